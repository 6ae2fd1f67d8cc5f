import asyncio
import json
import logging
import random

from google import genai
from google.genai import types
from google.genai.errors import ClientError, ServerError

from app.core.config import settings
from app.exceptions import GeminiAPIKeyError, GeminiServiceUnavailableError
from app.schemas.ai import AIQuestionGenerationRequest, AIQuestionGenerationResponse

logger = logging.getLogger(__name__)

_gemini_client: genai.Client | None = None
# 동시 Gemini API 요청 수 제한 (과부하 방지)
_gemini_semaphore: asyncio.Semaphore | None = None

DIFFICULTY_GUIDES = {
    "easy": "본문에 그대로 나오는 사실을 확인하는 기초 수준",
    "medium": "개념을 이해하고 적용해야 하는 중간 수준",
    "hard": "여러 개념을 연결해 추론해야 하는 심화 수준",
}


def get_gemini_client() -> genai.Client:
    """Gemini 클라이언트 싱글톤"""
    global _gemini_client
    if _gemini_client is None:
        if not settings.gemini_api_key:
            raise ValueError("GEMINI_API_KEY가 설정되지 않았습니다")
        _gemini_client = genai.Client(api_key=settings.gemini_api_key)
    return _gemini_client


def get_gemini_semaphore() -> asyncio.Semaphore:
    """Gemini API 동시 요청 제한 Semaphore 싱글톤"""
    global _gemini_semaphore
    if _gemini_semaphore is None:
        _gemini_semaphore = asyncio.Semaphore(settings.gemini_max_concurrent)
        logger.info(f"Gemini API 동시 요청 제한 설정: 최대 {settings.gemini_max_concurrent}개")
    return _gemini_semaphore


def build_prompt(request: AIQuestionGenerationRequest) -> str:
    return f"""당신은 교육용 퀴즈 문제 생성 전문가입니다.

아래 본문을 바탕으로 객관식 문제 1개를 생성하세요.
난이도: {request.difficulty} ({DIFFICULTY_GUIDES[request.difficulty]})

본문: {request.source_text}

다음 JSON 형식으로 응답하세요:
{{
  "question": "문제 내용",
  "options": ["선택지 1", "선택지 2", "선택지 3", "선택지 4"],
  "correct_answer": 0,
  "explanation": "해설"
}}

요구사항:
- 명확한 문제
- 선택지는 정확히 4개
- 정답 1개 (correct_answer는 정답 선택지의 인덱스, 0-3)
- 정답 위치는 무작위로 배치
- 오답은 그럴듯하지만 명확히 틀린 내용
- 간결한 해설"""


def parse_response_text(result: str) -> dict:
    """AI 응답 텍스트에서 JSON 추출 (마크다운 코드 블록 제거)"""
    text = result.strip()
    for fence in ("```json", "```"):
        if text.startswith(fence):
            text = text[len(fence):]
            break
    return json.loads(text.removesuffix("```").strip())


# 503 재시도 설정 (지수 백오프)
MAX_RETRIES = 5
BASE_RETRY_DELAY = 2.0
MAX_RETRY_DELAY = 16.0


def is_api_key_error(error: ClientError) -> bool:
    message = str(error).lower()
    return "403" in message or "permission_denied" in message or "leaked" in message


def is_overloaded(error: ServerError) -> bool:
    message = str(error)
    return "503" in message or "UNAVAILABLE" in message or "overloaded" in message.lower()


def retry_delay(attempt: int) -> float:
    """attempt번째 재시도 대기 시간 (±20% jitter, 최소 0.5초)"""
    delay = min(BASE_RETRY_DELAY * (2 ** attempt), MAX_RETRY_DELAY)
    jitter = delay * 0.2 * (random.random() * 2 - 1)
    return max(0.5, delay + jitter)


async def _call_gemini(client: genai.Client, prompt: str) -> AIQuestionGenerationResponse:
    """Gemini 호출 1회 (동기 SDK를 executor에서 실행)"""
    loop = asyncio.get_running_loop()
    response = await loop.run_in_executor(
        None,
        lambda: client.models.generate_content(
            model=settings.gemini_model,
            contents=prompt,
            config=types.GenerateContentConfig(
                temperature=0.7,
                response_mime_type="application/json",
            ),
        ),
    )
    if not response.text:
        raise ValueError("AI 응답이 비어있습니다")
    return AIQuestionGenerationResponse(**parse_response_text(response.text))


async def generate_question_with_gemini(request: AIQuestionGenerationRequest) -> AIQuestionGenerationResponse:
    """Gemini로 문제 생성 (동시 요청 제한, 과부하 시 재시도)"""
    client = get_gemini_client()
    prompt = build_prompt(request)

    async with get_gemini_semaphore():
        for attempt in range(MAX_RETRIES):
            try:
                result = await _call_gemini(client, prompt)
            except ClientError as e:
                if is_api_key_error(e):
                    logger.error(f"Gemini API 키 문제 감지: error_type={type(e).__name__}")
                    raise GeminiAPIKeyError()
                logger.error(f"Gemini API ClientError: status_code={getattr(e, 'status_code', 'unknown')}")
                raise
            except ServerError as e:
                if not is_overloaded(e):
                    logger.error(f"Gemini API ServerError (503 아님): {e}")
                    raise
                if attempt == MAX_RETRIES - 1:
                    logger.error(f"Gemini API 503 에러: 최대 재시도 횟수({MAX_RETRIES}) 도달")
                    break
                delay = retry_delay(attempt)
                logger.warning(f"Gemini API 과부하 (시도 {attempt + 1}/{MAX_RETRIES}), {delay:.1f}초 후 재시도")
                await asyncio.sleep(delay)
                continue

            if attempt > 0:
                logger.info(f"Gemini API 호출 성공 (시도 {attempt + 1}/{MAX_RETRIES})")
            return result

    raise GeminiServiceUnavailableError()


async def generate_question(request: AIQuestionGenerationRequest) -> AIQuestionGenerationResponse:
    """AI 문제 생성 (API 키가 없으면 GeminiAPIKeyError)"""
    if not settings.gemini_api_key:
        raise GeminiAPIKeyError("GEMINI_API_KEY가 설정되지 않았습니다")
    return await generate_question_with_gemini(request)
