"""Localized user-facing messages for application errors.

Raw exception text never reaches a user; the API and CLI render the
message for the error's key in the configured locale.
"""

from __future__ import annotations

from studyplan.core.errors import StudyPlanError

_MESSAGES: dict[str, dict[str, str]] = {
    "ja": {
        "not_found": "データが見つかりません",
        "not_found.plan": "やることリストが見つかりません",
        "not_found.task": "タスクが見つかりません",
        "not_found.comment": "コメントが見つかりません",
        "not_found.student": "生徒が見つかりません",
        "conflict": "データが他の操作で更新されました",
        "conflict.plan_exists": "この週のやることリストは既に存在します",
        "conflict.stale_ordering": "タスクの並び順が他の操作で変更されました。再読み込みしてください",
        "validation": "入力内容が正しくありません",
        "validation.out_of_week": "日付がこの週の範囲外です",
        "validation.week_start": "週の開始日は月曜日である必要があります",
        "validation.empty_content": "内容を入力してください",
        "permission_denied": "この操作を行う権限がありません",
        "incomplete_reorder_set": "並び替えにはその日のすべてのタスクを指定してください",
        "store_unavailable": "一時的に接続できません。しばらくしてから再度お試しください",
        "internal": "予期しないエラーが発生しました",
    },
    "en": {
        "not_found": "The requested data was not found",
        "not_found.plan": "The to-do list was not found",
        "not_found.task": "The task was not found",
        "not_found.comment": "The comment was not found",
        "not_found.student": "The student was not found",
        "conflict": "The data was changed by another operation",
        "conflict.plan_exists": "A to-do list already exists for this week",
        "conflict.stale_ordering": "The task order was changed by someone else. Please reload",
        "validation": "The input is not valid",
        "validation.out_of_week": "The date is outside this week",
        "validation.week_start": "The week must start on a Monday",
        "validation.empty_content": "Please enter some content",
        "permission_denied": "You are not allowed to perform this action",
        "incomplete_reorder_set": "A reorder must list every task of that day",
        "store_unavailable": "The service is temporarily unavailable. Please try again later",
        "internal": "An unexpected error occurred",
    },
}


def localized_message(error: StudyPlanError, locale: str = "ja") -> str:
    """Resolve the user-facing message for an error.

    Falls back from the specific key to the error kind, then to the
    Japanese catalog when the locale is unknown.
    """
    catalog = _MESSAGES.get(locale, _MESSAGES["ja"])
    return catalog.get(error.message_key) or catalog[error.kind.value]
