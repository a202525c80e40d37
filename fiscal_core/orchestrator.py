"""
Executor for mutation strategy chains.

Usage:
    from fiscal_core.orchestrator import MutationExecutor
    from fiscal_core.strategies import removal_chain

    result = await MutationExecutor().execute(removal_chain(api, "documents", 42))
    print(result.label)  # "deactivated", "deleted" or "simulated"

Failure classification:
- 404 / 405 / 501 mean "this route is not supported here": the attempt is a
  retryable failure and the next strategy runs silently.
- Anything else (validation errors, 5xx, no response) is a real error. It is
  recorded for reporting, and the chain still advances so one endpoint's
  unrelated failure does not block an alternate route.
- If no strategy succeeds, the last error is surfaced through MutationError.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from fiscal_core.config import Settings, get_settings
from fiscal_core.domain.models import AttemptOutcome, MutationAttempt
from fiscal_core.errors import GENERIC_ERROR_MESSAGE, MutationError, user_message
from fiscal_core.strategies.abstract import MutationResult, MutationStrategy
from fiscal_core.utils.logging import get_logger

log = get_logger(__name__)

RETRYABLE_STATUS_CODES = frozenset({404, 405, 501})


def classify_failure(exc: BaseException) -> AttemptOutcome:
    """Endpoint-unsupported signals are retryable by fallback; everything else is real."""
    status = getattr(exc, "status_code", None)
    if status in RETRYABLE_STATUS_CODES:
        return AttemptOutcome.RETRYABLE_FAILURE
    return AttemptOutcome.FATAL_FAILURE


def _attempt(
    index: int,
    strategy: MutationStrategy,
    outcome: AttemptOutcome,
    exc: Optional[BaseException] = None,
) -> MutationAttempt:
    return MutationAttempt(
        strategy_index=index,
        strategy_name=strategy.name,
        http_verb=strategy.http_verb,
        route=strategy.route,
        outcome=outcome,
        status_code=getattr(exc, "status_code", None),
        message=str(exc) if exc is not None else None,
    )


class MutationExecutor:
    """
    Runs an ordered strategy chain until one strategy succeeds.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()

    async def execute(
        self, strategies: Sequence[MutationStrategy], operation: str = "mutation"
    ) -> MutationResult:
        """
        Execute `strategies` in order and return the first success.

        Raises
        ------
        MutationError
            When every strategy failed. `last_error` (also the `__cause__`)
            is the failure of the last strategy attempted. The message comes
            from the last real error when there is one, otherwise from
            `last_error`.
        """
        attempts: List[MutationAttempt] = []
        real_errors: List[BaseException] = []
        last_error: Optional[BaseException] = None
        total = len(strategies)

        for index, strategy in enumerate(strategies):
            if strategy.simulated and not self.settings.simulated_mutations_enabled:
                log.warning(
                    f"[MUTATION SKIPPED] {operation}: simulated strategy disabled "
                    f"(app_env={self.settings.app_env})",
                    extra={"operation": operation, "strategy": strategy.name},
                )
                continue

            log.info(
                f"[MUTATION ATTEMPT {index + 1}/{total}] {operation} via {strategy.name}",
                extra={
                    "operation": operation,
                    "strategy": strategy.name,
                    "verb": strategy.http_verb,
                    "route": strategy.route,
                },
            )
            try:
                payload = await strategy.execute()
            except Exception as exc:  # noqa: BLE001 - classified and recorded, chain advances
                last_error = exc
                outcome = classify_failure(exc)
                attempts.append(_attempt(index, strategy, outcome, exc))
                if outcome is AttemptOutcome.FATAL_FAILURE:
                    real_errors.append(exc)
                    log.warning(
                        f"[MUTATION ERROR] {operation} via {strategy.name}: {exc}",
                        extra={
                            "operation": operation,
                            "strategy": strategy.name,
                            "status_code": getattr(exc, "status_code", None),
                        },
                    )
                else:
                    log.debug(
                        f"[MUTATION FALLBACK] {strategy.http_verb} /{strategy.route} unsupported",
                        extra={
                            "operation": operation,
                            "strategy": strategy.name,
                            "status_code": getattr(exc, "status_code", None),
                        },
                    )
                continue

            attempts.append(_attempt(index, strategy, AttemptOutcome.SUCCESS))
            if strategy.simulated:
                log.warning(
                    f"[MUTATION SIMULATED] {operation}: nothing was changed on the server",
                    extra={"operation": operation, "attempts": len(attempts)},
                )
            else:
                log.info(
                    f"[MUTATION SUCCESS] {operation} via {strategy.name} ({strategy.label})",
                    extra={
                        "operation": operation,
                        "strategy": strategy.name,
                        "attempts": len(attempts),
                    },
                )
            if real_errors:
                log.warning(
                    f"[MUTATION] {operation} succeeded after {len(real_errors)} real error(s)",
                    extra={"operation": operation, "errors": [str(e) for e in real_errors]},
                )
            return MutationResult(
                strategy_index=index,
                strategy_name=strategy.name,
                label=strategy.label,
                simulated=strategy.simulated,
                payload=payload,
                attempts=attempts,
                real_errors=real_errors,
            )

        if real_errors:
            message = user_message(real_errors[-1])
        elif last_error is not None:
            message = user_message(last_error)
        else:
            message = GENERIC_ERROR_MESSAGE
        log.error(
            f"[MUTATION FAILED] {operation}: all {len(attempts)} attempt(s) failed",
            extra={"operation": operation, "attempts": len(attempts)},
        )
        raise MutationError(
            message, last_error=last_error, attempts=attempts, real_errors=real_errors
        ) from last_error


__all__ = ["MutationExecutor", "RETRYABLE_STATUS_CODES", "classify_failure"]
