#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""DB 연결 확인 및 퀴즈 세션 현황 출력 (--sweep 지정 시 시간이 지난 세션 만료 처리)"""
import argparse
import asyncio
import sys
from pathlib import Path

project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

# 환경변수 로드 (app 설정보다 먼저)
from dotenv import load_dotenv

env_file = project_root / ".env"
if env_file.exists():
    load_dotenv(env_file)

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.crud import quiz_session as quiz_session_crud
from app.models.base import get_async_session_maker, get_engine
from app.services import session_service
from app.utils.time import utcnow


async def check_session_status(sweep: bool = False):
    print(f"[INFO] DATABASE_URL: {settings.database_url[:50]}...")

    try:
        engine = get_engine()
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        print("[OK] DB 연결 성공")

        async with get_async_session_maker()() as session:
            now = utcnow()
            stale = await quiz_session_crud.get_stale_sessions(session, now)
            print(f"\n시간이 지났지만 만료 처리되지 않은 세션: {len(stale)}개")
            for quiz_session in stale:
                print(f"  - id={quiz_session.id}, code={quiz_session.code}, expires_at={quiz_session.expires_at}")

            if sweep and stale:
                expired = await session_service.expire_stale_sessions(session, now)
                print(f"[OK] 만료 처리: {expired}개")

            counts = await quiz_session_crud.count_sessions_by_status(session)
            print("\n상태별 세션 수:")
            for status in ("waiting", "active", "expired"):
                print(f"  - {status}: {counts.get(status, 0)}")
            print(f"  - total: {sum(counts.values())}")
    except SQLAlchemyError as e:
        print(f"\n[ERROR] DB 오류: {e.__class__.__name__}: {e}")
        print("  .env의 DATABASE_URL과 마이그레이션 적용 여부(alembic upgrade head)를 확인하세요.")
        raise SystemExit(1)
    finally:
        await get_engine().dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="퀴즈 세션 현황 확인")
    parser.add_argument("--sweep", action="store_true", help="시간이 지난 세션을 만료 처리")
    args = parser.parse_args()

    asyncio.run(check_session_status(args.sweep))
