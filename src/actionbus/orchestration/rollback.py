"""Rollback — compensation of every service already constructed in a run.

Scopes are walked newest first. For each scope whose handler was built:

- ``task.rollback`` set    → build it from the same scope and call ``rollback()``
- handler has ``rollback`` → call it on the handler object itself
- otherwise                → nothing to compensate

A compensation failure is fatal; the remaining scopes are not compensated.
"""

from __future__ import annotations

from collections.abc import Mapping

from actionbus.core.logging import get_logger
from actionbus.orchestration.container import ref_name
from actionbus.orchestration.exceptions import RollbackError
from actionbus.orchestration.protocols import RollbackHandler
from actionbus.orchestration.run_context import ServiceScope

logger = get_logger(__name__)


class Rollback:
    """Invokes compensations over the scopes retained by a run."""

    def run(
        self,
        scopes: Mapping[str, ServiceScope],
        original_error: BaseException | None = None,
    ) -> list[str]:
        """Compensate ``scopes`` in reverse construction order.

        Args:
            scopes: Service id → scope, in construction order
            original_error: Failure that triggered the rollback, attached to
                any :class:`RollbackError` raised here

        Returns:
            Full names of the actions that were compensated, in call order
        """
        compensated: list[str] = []
        for scope in reversed(list(scopes.values())):
            if not scope.constructed:
                continue

            action = scope.task.full_name
            compensator = self._compensator(scope, original_error)
            if compensator is None:
                logger.debug("rollback.skipped", action=action)
                continue

            try:
                compensator.rollback()
            except Exception as e:
                error = RollbackError(action, str(e) or type(e).__name__, cause=e)
                error.original_error = original_error
                logger.error("rollback.failed", action=action, error=str(e))
                raise error from e

            compensated.append(action)
            logger.info("rollback.compensated", action=action)

        return compensated

    def _compensator(
        self, scope: ServiceScope, original_error: BaseException | None
    ) -> RollbackHandler | None:
        task = scope.task
        if task.rollback is None:
            if isinstance(scope.handler, RollbackHandler):
                return scope.handler
            return None

        try:
            compensator = scope.container.instance(task.rollback)
        except Exception as e:
            error = RollbackError(
                task.full_name,
                f"cannot build {ref_name(task.rollback)}: {e}",
                cause=e,
            )
            error.original_error = original_error
            raise error from e

        if not isinstance(compensator, RollbackHandler):
            error = RollbackError(
                task.full_name,
                f"{ref_name(task.rollback)} does not implement rollback()",
            )
            error.original_error = original_error
            raise error
        return compensator


__all__ = ["Rollback"]
