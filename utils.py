#!/usr/bin/env python3
"""
===========================
= SCEPTRE RESOURCE IMPORTER =
===========================

Title: SceptreImport Utilities Module
Version: v0.1.0

Description:
Shared utility functions for SceptreImport and its importer plugins. This module
provides logging setup, colour console output and standardized AWS error
handling used by the import framework and every resource-type plugin.
"""

import datetime
import logging
import sys
from contextlib import contextmanager
from functools import wraps
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar

# Global logger instance
logger = None
# Tracks whether setup_logging() has been explicitly called
_logging_configured = False

LOGGER_NAME = "sceptre_import"

RED = "\033[1;31m"
GREEN = "\033[1;32m"
YELLOW = "\033[1;33m"
RESET = "\033[0m"


def _cleanup_old_logs(logs_dir: Path, log_retention_days: int = 14) -> None:
    """
    Remove log files older than log_retention_days from the logs directory.

    Args:
        logs_dir: Path to the logs directory
        log_retention_days: Number of days to retain log files (default: 14)
    """
    try:
        cutoff = datetime.datetime.now() - datetime.timedelta(days=log_retention_days)
        cutoff_timestamp = cutoff.timestamp()
        removed = 0
        for log_file in logs_dir.glob("*.log"):
            try:
                if log_file.stat().st_mtime < cutoff_timestamp:
                    log_file.unlink()
                    removed += 1
            except OSError:
                continue
        if removed:
            logging.getLogger(LOGGER_NAME).debug(
                f"Cleaned up {removed} log file(s) older than {log_retention_days} days"
            )
    except OSError:
        pass  # Log cleanup is best-effort; never raise


def setup_logging(script_name: str = "sceptre-import", log_to_file: bool = True) -> logging.Logger:
    """
    Setup logging for SceptreImport with both console and file output.

    Library modules log through ``logging.getLogger(__name__)`` under the
    ``silib`` and ``importers`` packages, so their records reach the same
    handlers.

    Args:
        script_name (str): Name of the script for log file naming
        log_to_file (bool): Whether to log to file in addition to console

    Returns:
        logging.Logger: Configured logger instance
    """
    global logger, _logging_configured

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    logger.handlers = []

    console_formatter = logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    handlers = [console_handler]

    if log_to_file:
        try:
            logs_dir = Path(__file__).parent / "logs"
            logs_dir.mkdir(exist_ok=True)

            _cleanup_old_logs(logs_dir)

            # Timestamp for log filename: MM.DD.YYYY-HHMM
            timestamp = datetime.datetime.now().strftime("%m.%d.%Y-%H%M")
            log_filepath = logs_dir / f"logs-{script_name}-{timestamp}.log"

            file_handler = logging.FileHandler(log_filepath, mode='w', encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(file_formatter)
            logger.addHandler(file_handler)
            handlers.append(file_handler)

            logger.debug(f"SceptreImport logging initialized - Log file: {log_filepath}")

        except OSError as e:
            logger.error(f"Failed to setup file logging: {e}")
            logger.warning("Continuing with console logging only")

    # Route the library packages into the same handlers
    for package in ("silib", "importers"):
        package_logger = logging.getLogger(package)
        package_logger.setLevel(logging.DEBUG)
        package_logger.handlers = list(handlers)
        package_logger.propagate = False

    _logging_configured = True
    return logger


def get_logger() -> logging.Logger:
    """
    Get the current logger instance.

    If setup_logging() has not yet been called, returns a logger with a
    NullHandler so that library usage does not emit spurious output.

    Returns:
        logging.Logger: Logger instance
    """
    global logger
    if logger is None:
        if _logging_configured:
            logger = setup_logging()
        else:
            _null_logger = logging.getLogger(LOGGER_NAME)
            if not _null_logger.handlers:
                _null_logger.addHandler(logging.NullHandler())
            return _null_logger
    return logger


# Do NOT call setup_logging() at module import time.
# Entry points call utils.setup_logging() explicitly to activate logging.


def colorize(message: str, color: str) -> str:
    """Wrap a message in an ANSI colour sequence."""
    return f"{color}{message}{RESET}"


def print_color(message: str, color: str, stream=None) -> None:
    """Print a coloured message to stdout (or the given stream)."""
    print(colorize(message, color), file=stream or sys.stdout)


def log_error(error_message: str, error_obj: Optional[Exception] = None) -> None:
    """
    Log an error message to both console and file.

    Args:
        error_message: The error message to display
        error_obj: Optional exception object
    """
    current_logger = get_logger()
    if error_obj:
        current_logger.error(f"{error_message}: {str(error_obj)}")
        current_logger.debug(f"Exception details: {error_obj}", exc_info=True)
    else:
        current_logger.error(error_message)


def log_info(info_message: str) -> None:
    """Log an informational message to both console and file."""
    get_logger().info(info_message)


def log_success(success_message: str) -> None:
    """Log a success message to both console and file."""
    get_logger().info(f"SUCCESS: {success_message}")


def log_script_start(script_name: str, description: str = "") -> None:
    """
    Log the start of a script execution with standardized format.

    Args:
        script_name: Name of the script being executed
        description: Optional description of the script's purpose
    """
    current_logger = get_logger()
    current_logger.info("=" * 80)
    current_logger.info(f"SCRIPT START: {script_name}")
    if description:
        current_logger.info(f"DESCRIPTION: {description}")
    current_logger.info(f"START TIME: {datetime.datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    current_logger.info("=" * 80)


def log_script_end(script_name: str, start_time: Optional[datetime.datetime] = None) -> None:
    """
    Log the end of a script execution with standardized format.

    Args:
        script_name: Name of the script that was executed
        start_time: Optional start time to calculate duration
    """
    current_logger = get_logger()
    end_time = datetime.datetime.now()

    current_logger.info("=" * 80)
    current_logger.info(f"SCRIPT END: {script_name}")
    current_logger.info(f"END TIME: {end_time.strftime('%Y-%m-%d %H:%M:%S')}")

    if start_time:
        current_logger.info(f"DURATION: {end_time - start_time}")

    current_logger.info("=" * 80)


def log_section(section_name: str) -> None:
    """
    Log a section header for better log organization.

    Args:
        section_name: Name of the section
    """
    current_logger = get_logger()
    current_logger.info("-" * 50)
    current_logger.info(f"SECTION: {section_name}")
    current_logger.info("-" * 50)


def log_aws_operation(operation_name: str, service: str, region: Optional[str] = None, details: str = "") -> None:
    """
    Log AWS API operations for audit trail.

    Args:
        operation_name: Name of the AWS operation (e.g., create_change_set)
        service: AWS service name (e.g., cloudformation)
        region: AWS region (optional)
        details: Additional details about the operation
    """
    region_info = f" in {region}" if region else ""
    details_info = f" - {details}" if details else ""
    get_logger().info(f"AWS API: {service}.{operation_name}{region_info}{details_info}")


# =============================================================================
# STANDARDIZED ERROR HANDLING
# =============================================================================

T = TypeVar('T')


def _log_aws_exception(operation_name: str, e: Exception) -> None:
    from botocore.exceptions import ClientError, NoCredentialsError, WaiterError

    if isinstance(e, NoCredentialsError):
        log_error(
            f"{operation_name}: No AWS credentials found. "
            "Please configure credentials using 'aws configure' or set AWS_PROFILE."
        )
    elif isinstance(e, ClientError):
        error_code = e.response.get('Error', {}).get('Code', 'Unknown')
        error_msg = e.response.get('Error', {}).get('Message', str(e))
        log_error(f"{operation_name}: AWS error [{error_code}]: {error_msg}")
    elif isinstance(e, WaiterError):
        log_error(f"{operation_name}: {e}")
    else:
        log_error(f"{operation_name}: Unexpected error", e)


def aws_error_handler(
    operation_name: str,
    default_return: Any = None,
    reraise: bool = False
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator for standardized AWS error handling.

    Handles NoCredentialsError, ClientError, WaiterError and generic
    exceptions, logging each through the SceptreImport logger.

    Args:
        operation_name: Human-readable operation description for logging
        default_return: Value to return on error (if not reraising)
        reraise: Whether to re-raise the exception after logging

    Returns:
        Decorator function that wraps the target function

    Example:
        @aws_error_handler("Listing IAM roles", reraise=True)
        def list_roles() -> List[Dict[str, Any]]:
            iam = get_boto3_client('iam')
            return iam.list_roles()['Roles']
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                _log_aws_exception(operation_name, e)
                if reraise:
                    raise
                return default_return

        return wrapper
    return decorator


@contextmanager
def handle_aws_operation(operation_name: str, suppress_errors: bool = False):
    """
    Context manager for AWS operations with standardized error handling.

    Args:
        operation_name: Human-readable operation description for logging
        suppress_errors: Whether to suppress exceptions (False = reraise)

    Example:
        with handle_aws_operation("Uploading intermediate template"):
            s3 = get_boto3_client('s3')
            s3.upload_file(path, bucket, key)
    """
    try:
        yield
    except Exception as e:
        _log_aws_exception(operation_name, e)
        if not suppress_errors:
            raise
