from __future__ import annotations

import threading

from specgate.contract.errors import GateStage, OperationCancelled

CancelSignal = threading.Event


def raise_if_cancelled(cancel: CancelSignal | None, *, stage: GateStage, operation: str) -> None:
    if cancel is not None and cancel.is_set():
        raise OperationCancelled(
            f"{operation} cancelled before completion",
            stage=stage,
            user_message="The request was cancelled.",
            details={"operation": operation},
        )
