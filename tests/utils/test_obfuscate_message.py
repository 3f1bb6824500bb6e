from dztool.utils.obfuscate_message import obfuscate_message


def test_obfuscate_message_windows_path() -> None:
    message = r"Failed to copy C:\Users\admin\DayZServer\@CF\keys\cf.bikey"
    expected = r"Failed to copy C:\Users\...\DayZServer\@CF\keys\cf.bikey"
    assert obfuscate_message(message) == expected

    message = r"D:\Users\someone\Documents\file.txt: error"
    expected = r"D:\Users\...\Documents\file.txt: error"
    assert obfuscate_message(message) == expected


def test_obfuscate_message_posix_path() -> None:
    message = "/home/dayz/server/mpmissions/dayzOffline.chernarusplus"
    expected = "/home/.../server/mpmissions/dayzOffline.chernarusplus"
    assert obfuscate_message(message) == expected

    message = "Error at: /Users/someone/Library/file.txt"
    expected = "Error at: /Users/.../Library/file.txt"
    assert obfuscate_message(message) == expected


def test_obfuscate_message_without_path() -> None:
    assert obfuscate_message("Installed @CF") == "Installed @CF"


def test_obfuscate_message_can_keep_paths() -> None:
    message = "/home/dayz/server"
    assert obfuscate_message(message, anonymize_path=False) == message
