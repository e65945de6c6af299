"""
Notification channel and sounds.

Messages always go to the console; on macOS they are also shown as system
notifications.
"""

import subprocess
import sys


def _escape_for_applescript(text: str) -> str:
    """Escape special characters for an AppleScript string."""
    # Backslash first
    text = text.replace("\\", "\\\\")
    text = text.replace('"', '\\"')
    text = text.replace("\r", "\\r")
    text = text.replace("\n", "\\n")
    text = text.replace("\t", "\\t")
    return text


def notify(message: str, title: str = "LiveScribe") -> None:
    """
    Report a message to the user.

    Args:
        message: Notification body
        title: Notification title
    """
    print(f"[Notice] {message}")

    if sys.platform != "darwin":
        return

    try:
        script = (
            f'display notification "{_escape_for_applescript(message)}" '
            f'with title "{_escape_for_applescript(title)}"'
        )
        subprocess.run(
            ["osascript"],
            input=script.encode("utf-8"),
            capture_output=True,
            timeout=2.0,
        )
    except (OSError, subprocess.SubprocessError) as e:
        print(f"notify error: {e}")


def play_sound(sound_name: str = "Tink") -> None:
    """Play a macOS system sound; terminal bell elsewhere."""
    if sys.platform != "darwin":
        sys.stdout.write("\a")
        sys.stdout.flush()
        return

    try:
        subprocess.run(
            ["afplay", f"/System/Library/Sounds/{sound_name}.aiff"],
            capture_output=True,
            timeout=2.0,
        )
    except (OSError, subprocess.SubprocessError) as e:
        print(f"play_sound error: {e}")


def play_busy_sound() -> None:
    """Edit rejected because another one is running."""
    play_sound("Basso")
