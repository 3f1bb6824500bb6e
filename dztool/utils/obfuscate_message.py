"""
Used by the loguru formatter to keep user names out of log files that
server admins share when reporting problems.
"""

import re

WINDOWS_USER_PATH = re.compile(r"([A-Za-z]:\\Users\\)[^\\]+\\")
POSIX_USER_PATH = re.compile(r"(/home/|/Users/)[^/]+/")


def obfuscate_message(message: str, anonymize_path: bool = True) -> str:
    """
    Obfuscate the message such that it does not reveal user information.

    Args:
        message: The message to obfuscate.
        anonymize_path: Whether to anonymize paths in the message.

    Returns:
        The obfuscated message.
    """
    if anonymize_path:
        message = WINDOWS_USER_PATH.sub(r"\1...\\", message)
        message = POSIX_USER_PATH.sub(r"\1.../", message)
    return message
