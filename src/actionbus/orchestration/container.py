"""
Instantiation scope used to build handler objects.

Each task gets a fresh copy of the bus container, scoped to its service.
Results produced by the task's required actions are injected into the copy
with :meth:`Container.set`; the handler's constructor then receives them by
type. The copy is retained for the rest of the run so the rollback step can
build compensators from the very same scope.

Manifesto:
    Handlers declare what they need in their constructor signature and
    nothing else. The container is the only place that knows how to satisfy
    those declarations:

    - **Injected values:** payloads of prior results, matched by type
    - **Class map:** per-action ``{abstract: concrete}`` substitutions
    - **Factories:** constructor functions registered per handler reference
    - **Autowiring:** user classes are constructed recursively

ARCHITECTURE
────────────
::

    container.instance(ref)
        │
        ├─ resolve_ref(ref)           "pkg.mod:Class" → Class
        ├─ bound factory?             factory(container)
        ├─ class map?                 Abstract → Concrete
        └─ autowire __init__          for each parameter:
                                        injected value of that type
                                        → class-map / user class (recursive)
                                        → parameter default
                                        → ContainerError

Example::

    container = Container()
    scope = container.copy()
    scope.set(OrderCreated(order_id=7))      # payload of orders.create
    handler = scope.instance(ChargeCard)     # ChargeCard(order: OrderCreated)

Tags:
    actionbus, dependency-injection, container, autowiring
"""

from __future__ import annotations

import builtins
import importlib
import inspect
import typing
from collections.abc import Callable
from typing import Any

from actionbus.core.errors import ContainerError

Factory = Callable[["Container"], Any]


def resolve_ref(ref: Any) -> Any:
    """
    Resolve a handler reference to the object it names.

    Accepts a class (returned as-is) or an import path in either
    ``"package.module:Name"`` or ``"package.module.Name"`` form.

    Raises:
        LookupError: If the module or attribute cannot be found
    """
    if not isinstance(ref, str):
        return ref

    if ":" in ref:
        module_name, _, attr_path = ref.partition(":")
    else:
        module_name, _, attr_path = ref.rpartition(".")
    if not module_name or not attr_path:
        raise LookupError(f"invalid reference {ref!r}")

    try:
        target: Any = importlib.import_module(module_name)
    except ImportError as e:
        raise LookupError(f"module {module_name!r} cannot be imported: {e}") from e

    for part in attr_path.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as e:
            raise LookupError(f"{module_name!r} has no attribute {attr_path!r}") from e
    return target


def ref_name(ref: Any) -> str:
    """Stable display name of a handler reference."""
    if isinstance(ref, str):
        return ref
    module = getattr(ref, "__module__", None)
    qualname = getattr(ref, "__qualname__", None) or repr(ref)
    return f"{module}:{qualname}" if module else qualname


def _is_autowirable(cls: Any) -> bool:
    return inspect.isclass(cls) and cls.__module__ != builtins.__name__ and not inspect.isabstract(cls)


class Container:
    """Per-service instantiation scope with type-based constructor injection."""

    def __init__(self) -> None:
        self._values: dict[type, Any] = {}
        self._class_map: dict[Any, Any] = {}
        self._factories: dict[Any, Factory] = {}

    # ── Registration ─────────────────────────────────────────────

    def set(self, value: Any) -> None:
        """Make ``value`` injectable for its type and every base class except ``object``."""
        for klass in type(value).__mro__:
            if klass is object:
                continue
            self._values[klass] = value

    def get(self, klass: type) -> Any | None:
        return self._values.get(klass)

    def set_class_map(self, class_map: dict[Any, Any]) -> None:
        """Bind abstract references to concrete ones for this scope."""
        for abstract, concrete in class_map.items():
            self._class_map[self._resolve(abstract)] = concrete

    def bind(self, ref: Any, factory: Factory) -> None:
        """Register a constructor function used instead of autowiring for ``ref``."""
        if not callable(factory):
            raise TypeError(f"factory for {ref_name(ref)} must be callable")
        self._factories[self._resolve(ref)] = factory

    def has_factory(self, ref: Any) -> bool:
        """Whether ``ref`` is built by a bound factory; unresolvable refs never are."""
        try:
            return resolve_ref(ref) in self._factories
        except LookupError:
            return False

    def copy(self) -> Container:
        """Cheap duplicate: registrations are copied, values are shared."""
        clone = Container()
        clone._values = dict(self._values)
        clone._class_map = dict(self._class_map)
        clone._factories = dict(self._factories)
        return clone

    __copy__ = copy

    # ── Resolution ───────────────────────────────────────────────

    def instance(self, ref: Any) -> Any:
        """Build an object for ``ref`` from this scope."""
        return self._build(self._resolve(ref), chain=())

    def _resolve(self, ref: Any) -> Any:
        try:
            return resolve_ref(ref)
        except LookupError as e:
            raise ContainerError(f"Cannot resolve {ref_name(ref)}: {e}", cause=e) from e

    def _build(self, target: Any, chain: tuple[Any, ...]) -> Any:
        if target in chain:
            path = " -> ".join(ref_name(t) for t in chain + (target,))
            raise ContainerError(f"Circular constructor dependency: {path}")

        if target in self._factories:
            return self._factories[target](self)

        if target in self._class_map:
            return self._build(self._resolve(self._class_map[target]), chain + (target,))

        if not inspect.isclass(target):
            raise ContainerError(f"Cannot instantiate {ref_name(target)}: not a class")

        if inspect.isabstract(target):
            raise ContainerError(
                f"Cannot instantiate abstract {ref_name(target)}: bind it in the class map"
            )

        return target(**self._constructor_kwargs(target, chain + (target,)))

    def _constructor_kwargs(self, cls: type, chain: tuple[Any, ...]) -> dict[str, Any]:
        init = cls.__init__
        if init is object.__init__:
            return {}

        try:
            hints = typing.get_type_hints(init)
        except NameError:
            # Annotations naming locals of an enclosing function; fall back to raw ones
            hints = {}

        kwargs: dict[str, Any] = {}
        for name, param in inspect.signature(init).parameters.items():
            if name == "self" or param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
                continue

            annotation = hints.get(name, param.annotation)
            if annotation is param.empty or isinstance(annotation, str):
                annotation = None

            if annotation is not None and annotation in self._values:
                kwargs[name] = self._values[annotation]
            elif annotation is not None and (
                annotation in self._factories or annotation in self._class_map
            ):
                kwargs[name] = self._build(annotation, chain)
            elif param.default is not param.empty:
                continue
            elif _is_autowirable(annotation):
                kwargs[name] = self._build(annotation, chain)
            else:
                raise ContainerError(
                    f"Cannot resolve parameter {name!r} of {ref_name(cls)}"
                    f" (annotation: {annotation!r})"
                )
        return kwargs


__all__ = ["Container", "Factory", "resolve_ref", "ref_name"]
