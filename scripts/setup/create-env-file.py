#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""로컬 개발용 .env 파일 생성"""
import os
from pathlib import Path

project_root = Path(__file__).parent.parent.parent
env_file = project_root / ".env"

# 민감 정보(<...>)는 직접 채워 넣어야 함
env_content = """# Database
DATABASE_URL=postgresql+asyncpg://<DB_USER>:<DB_PASSWORD>@localhost:5432/live_quiz_db

# CORS
ALLOWED_ORIGINS=http://localhost:5173,http://localhost:3000

# Environment
# production으로 설정하면 live_quiz.log 파일 로그가 추가되고 에러 상세가 숨겨짐
LOG_DIR=/app/logs
ENVIRONMENT=development

# Gemini (AI 문제 생성)
GEMINI_API_KEY=<GEMINI_API_KEY>
GEMINI_MODEL=gemini-2.5-flash
GEMINI_MAX_CONCURRENT=2

# 만료 세션 정리 주기 (초, 0이면 비활성화)
SESSION_SWEEP_INTERVAL_SECONDS=30
"""


def create_env_file():
    """.env 파일 생성 (UTF-8, BOM 없음)"""
    print(f"[INFO] .env 파일 생성 중: {env_file}")

    if env_file.exists():
        backup_file = project_root / ".env.backup"
        print(f"[INFO] 기존 .env 파일 백업: {backup_file}")
        backup_file.write_text(env_file.read_text(encoding="utf-8"), encoding="utf-8", newline="\n")

    with open(env_file, "w", encoding="utf-8", newline="\n") as f:
        f.write(env_content)

    print(f"[OK] .env 파일 생성 완료: {env_file}")

    if os.name != "nt":
        os.chmod(env_file, 0o600)
        print("[INFO] 파일 권한 설정: 600")


if __name__ == "__main__":
    try:
        create_env_file()
    except OSError as e:
        print(f"\n[ERROR] 에러 발생: {e.__class__.__name__}: {e}")
        raise SystemExit(1)
