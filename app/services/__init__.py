from app.services.ai_service import generate_question as generate_ai_question
from app.services.question_service import (
    create_question,
    generate_question,
    list_available_questions,
    list_questions,
)
from app.services.results_service import get_session_results
from app.services.session_service import (
    broadcast_question,
    create_session,
    end_session,
    expire_stale_sessions,
    get_session_detail,
    get_session_stats,
    join_session,
    poll_session,
)
from app.services.submission_service import submit_answer

__all__ = [
    "generate_ai_question",
    "create_question",
    "generate_question",
    "list_questions",
    "list_available_questions",
    "create_session",
    "broadcast_question",
    "end_session",
    "get_session_detail",
    "join_session",
    "poll_session",
    "expire_stale_sessions",
    "get_session_stats",
    "submit_answer",
    "get_session_results",
]
