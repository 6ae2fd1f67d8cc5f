"""문제 작성 / AI 생성 서비스 테스트"""
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from google.genai.errors import ClientError, ServerError

from app.exceptions import (
    ForbiddenError,
    GeminiAPIKeyError,
    GeminiServiceUnavailableError,
    InvalidInputError,
    QuestionNotFoundError,
)
from app.schemas import ai, question as question_schema
from app.schemas import quiz_session as quiz_session_schema
from app.services import ai_service, question_service, session_service

SOURCE_TEXT = (
    "광합성은 식물이 빛 에너지를 이용하여 이산화탄소와 물로부터 포도당을 합성하는 과정이다. "
    "이 과정은 엽록체에서 일어나며 부산물로 산소가 방출된다."
)


@pytest.fixture
def ai_response():
    """모킹된 AI 응답"""
    return ai.AIQuestionGenerationResponse(
        question="광합성이 일어나는 세포 소기관은?",
        options=["미토콘드리아", "엽록체", "리보솜", "골지체"],
        correct_answer=1,
        explanation="광합성은 엽록체에서 일어난다.",
    )


@pytest.mark.asyncio
async def test_create_question(test_db_session, instructor):
    """직접 작성한 문제 저장"""
    request = question_schema.QuestionCreateRequest(
        course_id="course-1",
        question="1 + 1 = ?",
        options=["1", "2", "3", "4"],
        correct_answer=1,
        explanation="1 + 1 = 2",
    )

    response = await question_service.create_question(test_db_session, request, instructor)

    assert response.id is not None
    assert response.options == ["1", "2", "3", "4"]
    assert response.source == "manual"
    assert response.created_by == instructor.identity
    assert response.times_used == 0
    assert response.reserved_by_session_id is None


@pytest.mark.asyncio
async def test_create_question_by_student_forbidden(test_db_session, student):
    request = question_schema.QuestionCreateRequest(
        course_id="course-1",
        question="1 + 1 = ?",
        options=["1", "2", "3", "4"],
        correct_answer=1,
        explanation="1 + 1 = 2",
    )
    with pytest.raises(ForbiddenError):
        await question_service.create_question(test_db_session, request, student)


@pytest.mark.asyncio
async def test_generate_question(test_db_session, instructor, ai_response):
    """AI 생성 문제 저장 (공백 정리된 본문 전달)"""
    mock_generate = AsyncMock(return_value=ai_response)
    with patch.object(ai_service, "generate_question", mock_generate):
        response = await question_service.generate_question(
            test_db_session,
            question_schema.QuestionGenerateRequest(
                course_id="course-1", source_text=f"  {SOURCE_TEXT}\n\n", difficulty="easy"
            ),
            instructor,
        )

    assert response.source == "ai"
    assert response.correct_answer == 1
    assert response.options[1] == "엽록체"
    assert response.difficulty == "easy"

    sent_request = mock_generate.call_args.args[0]
    assert sent_request.source_text == SOURCE_TEXT
    assert sent_request.difficulty == "easy"


@pytest.mark.asyncio
async def test_generate_question_short_text(test_db_session, instructor):
    """본문이 너무 짧으면 AI 호출 없이 InvalidInputError"""
    mock_generate = AsyncMock()
    with patch.object(ai_service, "generate_question", mock_generate):
        with pytest.raises(InvalidInputError):
            await question_service.generate_question(
                test_db_session,
                question_schema.QuestionGenerateRequest(course_id="course-1", source_text="짧은 본문"),
                instructor,
            )
    mock_generate.assert_not_called()


def test_normalize_source_text_truncates():
    text = "가" * (question_service.MAX_SOURCE_TEXT_LENGTH + 100)
    assert len(question_service.normalize_source_text(text)) == question_service.MAX_SOURCE_TEXT_LENGTH


@pytest.mark.asyncio
async def test_list_questions_with_usage(test_db_session, make_question, instructor):
    """과목별 문제 목록 (사용 현황 포함)"""
    await make_question(times_used=3)
    await make_question(question="두 번째")
    await make_question(course_id="course-2")

    response = await question_service.list_questions(test_db_session, "course-1", instructor)

    assert response.total == 2
    assert sorted(q.times_used for q in response.questions) == [0, 3]


@pytest.mark.asyncio
async def test_list_available_excludes_reserved(test_db_session, make_question, instructor):
    free = await make_question()
    await make_question(reserved_by_session_id=7)

    response = await question_service.list_available_questions(test_db_session, "course-1", instructor)

    assert [q.id for q in response.questions] == [free.id]


@pytest.mark.asyncio
async def test_list_available_includes_question_of_lapsed_session(test_db_session, make_question, instructor):
    """시간이 지난 세션이 점유한 문제는 목록 조회 시 해제되어 포함"""
    now = datetime(2026, 3, 2, 9, 0, 0, tzinfo=timezone.utc)
    question = await make_question()
    request = quiz_session_schema.QuizSessionCreateRequest(
        session_type="single", duration=30, course_id="course-1", question_id=question.id
    )
    await session_service.create_session(test_db_session, request, instructor, now=now)

    during = await question_service.list_available_questions(
        test_db_session, "course-1", instructor, now=now + timedelta(seconds=10)
    )
    assert question.id not in [q.id for q in during.questions]

    after = await question_service.list_available_questions(
        test_db_session, "course-1", instructor, now=now + timedelta(hours=1)
    )
    assert [q.id for q in after.questions] == [question.id]
    assert after.questions[0].reserved_by_session_id is None


@pytest.mark.asyncio
async def test_get_question_detail_not_found(test_db_session, instructor):
    with pytest.raises(QuestionNotFoundError):
        await question_service.get_question_detail(test_db_session, 9999, instructor)


@pytest.mark.asyncio
async def test_ai_generate_without_api_key():
    """API 키가 없으면 GeminiAPIKeyError"""
    with patch.object(ai_service.settings, "gemini_api_key", None):
        with pytest.raises(GeminiAPIKeyError):
            await ai_service.generate_question(ai.AIQuestionGenerationRequest(source_text=SOURCE_TEXT))


def test_parse_response_text_strips_code_block():
    text = '```json\n{"question": "Q", "options": ["a", "b", "c", "d"], "correct_answer": 0, "explanation": "E"}\n```'
    data = ai_service.parse_response_text(text)
    assert data["options"] == ["a", "b", "c", "d"]


def test_build_prompt_contains_source_and_difficulty():
    prompt = ai_service.build_prompt(ai.AIQuestionGenerationRequest(source_text=SOURCE_TEXT, difficulty="hard"))
    assert SOURCE_TEXT in prompt
    assert ai_service.DIFFICULTY_GUIDES["hard"] in prompt


@pytest.mark.asyncio
async def test_gemini_retries_when_overloaded(ai_response):
    """과부하(503) 응답은 재시도 후 성공"""
    overloaded = ServerError(503, {"error": {"code": 503, "message": "The model is overloaded.", "status": "UNAVAILABLE"}})
    mock_call = AsyncMock(side_effect=[overloaded, ai_response])

    with patch.object(ai_service, "get_gemini_client", return_value=MagicMock()), \
            patch.object(ai_service, "_call_gemini", mock_call), \
            patch.object(ai_service, "retry_delay", return_value=0):
        result = await ai_service.generate_question_with_gemini(
            ai.AIQuestionGenerationRequest(source_text=SOURCE_TEXT)
        )

    assert result.question == ai_response.question
    assert mock_call.call_count == 2


@pytest.mark.asyncio
async def test_gemini_gives_up_after_max_retries():
    overloaded = ServerError(503, {"error": {"code": 503, "message": "The model is overloaded.", "status": "UNAVAILABLE"}})

    with patch.object(ai_service, "get_gemini_client", return_value=MagicMock()), \
            patch.object(ai_service, "_call_gemini", AsyncMock(side_effect=overloaded)) as mock_call, \
            patch.object(ai_service, "retry_delay", return_value=0):
        with pytest.raises(GeminiServiceUnavailableError):
            await ai_service.generate_question_with_gemini(ai.AIQuestionGenerationRequest(source_text=SOURCE_TEXT))

    assert mock_call.call_count == ai_service.MAX_RETRIES


@pytest.mark.asyncio
async def test_gemini_permission_denied():
    denied = ClientError(403, {"error": {"code": 403, "message": "API key was reported as leaked.", "status": "PERMISSION_DENIED"}})

    with patch.object(ai_service, "get_gemini_client", return_value=MagicMock()), \
            patch.object(ai_service, "_call_gemini", AsyncMock(side_effect=denied)):
        with pytest.raises(GeminiAPIKeyError):
            await ai_service.generate_question_with_gemini(ai.AIQuestionGenerationRequest(source_text=SOURCE_TEXT))
