"""
Logging utilities for callback debugging.
"""
import logging
import os
from typing import Dict, Mapping

logger = logging.getLogger(__name__)

SENSITIVE_PARAMS = {
    "code",
    "state",
    "nonce",
    "access_token",
    "id_token",
    "refresh_token",
}


def redact_params(params: Mapping[str, str]) -> Dict[str, str]:
    """Copy callback parameters with secrets replaced"""
    return {
        name: "[REDACTED]" if name.lower() in SENSITIVE_PARAMS else value
        for name, value in params.items()
    }


def log_callback(request_id: str, method: str, params: Mapping[str, str]):
    """Log incoming callback details without exposing secrets"""
    logger.debug(f"[{request_id}] CALLBACK {method}")
    for name, value in redact_params(params).items():
        logger.debug(f"[{request_id}] {name}: {value}")


def setup_debug_logging(log_file: str = "redirect_auth_debug.log") -> str:
    """Send DEBUG logs to the console and to a log file

    Args:
        log_file: Path of the debug log, opened in append mode

    Returns:
        Absolute path of the debug log
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Clear existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    log_path = os.path.abspath(log_file)
    file_handler = logging.FileHandler(log_path, mode='a', encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG)

    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    file_handler.setFormatter(formatter)
    console_handler.setFormatter(formatter)

    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    logger.info(f"Debug logging enabled - appending to {log_path}")
    return log_path
