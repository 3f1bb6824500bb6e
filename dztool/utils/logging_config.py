import sys
from pathlib import Path
from typing import Optional

import loguru
from loguru import logger

from dztool.utils.app_info import AppInfo
from dztool.utils.obfuscate_message import obfuscate_message


def formatter(record: "loguru.Record") -> str:
    """Custom formatter for loguru logger"""
    format_string = (
        "[{level}]"
        "[{time:YYYY-MM-DD HH:mm:ss}]"
        "[{process.id}]"
        "[{thread.name}]"
        "[{module}]"
        "[{function}][{line}]"
        " : "
    )

    record["extra"]["obfuscated_message"] = obfuscate_message(record["message"])
    return format_string + "{extra[obfuscated_message]}\n"


def rotate_log_file(log_file: Path) -> None:
    """
    Keep the previous run's log as <name>.old.log and drop the one before it.
    """
    old_log_file = log_file.with_suffix(".old.log")
    if old_log_file.is_file():
        old_log_file.unlink()
    if log_file.is_file():
        log_file.rename(old_log_file)


def setup_logger(
    debug: bool = False, verbose: bool = False, log_folder: Optional[Path] = None
) -> Path:
    """
    Replace loguru's default sink with a file sink and a stderr sink.

    :param debug: Write DEBUG records to the log file instead of INFO and up
    :param verbose: Show INFO records on stderr instead of WARNING and up
    :param log_folder: Folder for the log file, defaults to the platform log folder
    :return: Path of the log file
    """
    if log_folder is None:
        AppInfo().ensure_folders()
        log_folder = AppInfo().user_log_folder
    log_folder.mkdir(parents=True, exist_ok=True)

    # Remove the default stderr logger and any sink still holding the log file
    logger.remove()

    log_file = log_folder / (AppInfo().app_name + ".log")
    rotate_log_file(log_file)

    logger.add(log_file, level="DEBUG" if debug else "INFO", format=formatter)
    logger.add(
        sys.stderr,
        level="INFO" if verbose else "WARNING",
        format=formatter,
        colorize=False,
    )
    return log_file
