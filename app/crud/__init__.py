from app.crud.question import (
    create_question,
    get_available_questions,
    get_question_by_id,
    get_questions_by_course,
    get_reservation_holder,
    mark_question_used,
    release_question,
    release_session_questions,
    reserve_question,
)
from app.crud.quiz_session import (
    add_broadcast,
    add_participant,
    count_sessions_by_status,
    get_broadcasts,
    get_latest_broadcast,
    get_live_session_by_code,
    get_participants,
    get_session_by_code,
    get_session_by_id,
    get_stale_reservation_holders,
    get_stale_sessions,
)
from app.crud.submission import (
    create_submission,
    get_submission,
    get_submissions_by_session,
)

__all__ = [
    "get_question_by_id",
    "create_question",
    "get_questions_by_course",
    "get_available_questions",
    "reserve_question",
    "get_reservation_holder",
    "release_question",
    "release_session_questions",
    "mark_question_used",
    "get_session_by_id",
    "get_session_by_code",
    "get_live_session_by_code",
    "add_broadcast",
    "get_broadcasts",
    "get_latest_broadcast",
    "add_participant",
    "get_participants",
    "get_stale_sessions",
    "get_stale_reservation_holders",
    "count_sessions_by_status",
    "create_submission",
    "get_submission",
    "get_submissions_by_session",
]
