#!/usr/bin/env python3
"""
관리자 계정 생성 스크립트

회원가입 API는 항상 일반 사용자만 만들기 때문에
최초 관리자 계정은 이 스크립트로 생성합니다.

사용법:
    python scripts/create_admin.py --email EMAIL --password PASSWORD [옵션]

옵션:
    --email, -e     관리자 이메일 (필수)
    --password, -p  비밀번호 (8-16자, 대문자/특수문자 포함)
    --name, -n      이름 [기본값: Administrator]
    --address, -a   주소

예시:
    python scripts/create_admin.py -e admin@example.com -p 'Admin!234'
"""
import argparse
import sys
from pathlib import Path

# 프로젝트 루트를 path에 추가
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


def main():
    parser = argparse.ArgumentParser(
        description="Store Rating 관리자 계정 생성",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
예시:
    python scripts/create_admin.py -e admin@example.com -p 'Admin!234'
    python scripts/create_admin.py -e admin@example.com -p 'Admin!234' -n 홍길동
        """,
    )

    parser.add_argument("-e", "--email", required=True, help="관리자 이메일")
    parser.add_argument("-p", "--password", required=True, help="비밀번호")
    parser.add_argument(
        "-n",
        "--name",
        default="Administrator",
        help="이름 (기본값: Administrator)",
    )
    parser.add_argument("-a", "--address", default=None, help="주소")

    args = parser.parse_args()

    from sqlalchemy import create_engine, select
    from sqlalchemy.orm import Session

    from storerate.config import get_settings
    from storerate.database import Base
    from storerate.exceptions import ValidationError
    from storerate.models import User, UserRole
    from storerate.services.password import get_password_hash, validate_password

    try:
        validate_password(args.password)
    except ValidationError as e:
        print(f"비밀번호 정책 위반: {e.message}")
        sys.exit(1)

    settings = get_settings()
    engine = create_engine(settings.database_url_sync)
    Base.metadata.create_all(engine)

    email = args.email.strip().lower()
    with Session(engine) as session:
        existing = session.execute(select(User).where(User.email == email)).scalar_one_or_none()
        if existing is not None:
            print(f"이미 존재하는 이메일입니다: {email} (role={existing.role.value})")
            sys.exit(1)

        admin = User(
            name=args.name,
            email=email,
            password_hash=get_password_hash(args.password),
            address=args.address,
            role=UserRole.ADMIN,
        )
        session.add(admin)
        session.commit()
        print(f"관리자 계정 생성 완료: id={admin.id}, email={admin.email}")

    engine.dispose()


if __name__ == "__main__":
    main()
