"""Per-user key/value settings."""
from study_quiz.db import get_connection

CLI_OWNER = "__cli__"


def get_setting(db_path: str, user_id: str, key: str, default: str = None) -> str | None:
    conn = get_connection(db_path)
    try:
        row = conn.execute(
            "SELECT value FROM user_settings WHERE user_id = ? AND key = ?", (user_id, key)
        ).fetchone()
    finally:
        conn.close()
    return row["value"] if row else default


def set_setting(db_path: str, user_id: str, key: str, value: str) -> None:
    conn = get_connection(db_path)
    try:
        conn.execute(
            """INSERT INTO user_settings (user_id, key, value) VALUES (?, ?, ?)
            ON CONFLICT(user_id, key) DO UPDATE SET value=excluded.value""",
            (user_id, key, value),
        )
        conn.commit()
    finally:
        conn.close()


def get_int_setting(db_path: str, user_id: str, key: str, default: int | None = None) -> int | None:
    value = get_setting(db_path, user_id, key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def get_current_user(db_path: str) -> str | None:
    return get_setting(db_path, CLI_OWNER, "current_user")


def set_current_user(db_path: str, user_id: str) -> None:
    set_setting(db_path, CLI_OWNER, "current_user", user_id)
