import json
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO


def iso_timestamp() -> str:
    """UTC timestamp for structured CLI output."""
    return datetime.now(timezone.utc).isoformat()


def envelope(command: str, status: str = "OK", message: str = "", payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {
        "command": command,
        "status": status,
        "message": message,
        "timestamp": iso_timestamp(),
        "payload": payload or {},
    }


def emit(body: Dict[str, Any], stream: Optional[TextIO] = None) -> None:
    out = stream or sys.stdout
    out.write(json.dumps(body, ensure_ascii=False, indent=2) + "\n")


def structured_response(
    command: str,
    *,
    status: str = "OK",
    message: str = "",
    payload: Optional[Dict[str, Any]] = None,
    exit_code: int = 0,
) -> int:
    """Print the JSON envelope of a non-interactive command and return its exit code."""
    emit(envelope(command, status, message, payload))
    return exit_code


def structured_error(command: str, message: str, *, payload: Optional[Dict[str, Any]] = None) -> int:
    return structured_response(command, status="ERROR", message=message, payload=payload, exit_code=1)


def check_response(command: str, would_change: bool, payload: Dict[str, Any]) -> int:
    """Dry-run result: exit 1 when the file is not canonical yet."""
    body = dict(payload)
    body["mode"] = "check"
    if would_change:
        return structured_response(command, status="CHANGED", message="File is not canonical", payload=body, exit_code=1)
    return structured_response(command, message="File is already canonical", payload=body)


__all__ = ["iso_timestamp", "envelope", "emit", "structured_response", "structured_error", "check_response"]
