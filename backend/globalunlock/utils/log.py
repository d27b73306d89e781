"""
Structured logging utility for admin mutation flows
"""
import logging
import json
from datetime import datetime, timezone
from typing import Dict, Any, Optional


def get_logger(name: str) -> logging.Logger:
    """Get a logger with JSON-like structured output"""
    return logging.getLogger(name)


def log_mutation_event(
    logger: logging.Logger,
    step: str,
    admin: Optional[str],
    subject: str,
    ok: bool,
    extra: Optional[Dict[str, Any]] = None,
):
    """
    Log a mutation event with structured format:
    {"at":"mutation","step":"...","admin":"...","subject":"...","ok":true/false,"extra":{...}}
    """
    log_data = {
        "at": "mutation",
        "step": step,
        "admin": admin,
        "subject": subject,
        "ok": ok,
        "ts": datetime.now(timezone.utc).isoformat(),
    }
    if extra:
        log_data["extra"] = extra

    log_msg = json.dumps(log_data, separators=(',', ':'), default=str)

    if ok:
        logger.info(log_msg)
    else:
        logger.warning(log_msg)
