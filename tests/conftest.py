"""
pytest 공통 fixture
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from storerate.config import Settings
from storerate.database import Base
from storerate.main import create_app
from storerate.models.rating import Rating
from storerate.models.store import Store
from storerate.models.user import User, UserRole
from storerate.services.jwt_service import JWTService
from storerate.services.password import get_password_hash

TEST_PASSWORD = "Secret!234"


@pytest.fixture
def user_password():
    """팩토리로 만든 사용자의 비밀번호"""
    return TEST_PASSWORD


@pytest.fixture(scope="session")
def password_hash():
    """해시 계산 비용이 커서 세션 단위로 재사용"""
    return get_password_hash(TEST_PASSWORD)


@pytest.fixture
def settings(tmp_path):
    """테스트용 설정 (임시 SQLite 파일)"""
    return Settings(
        _env_file=None,
        database_url_override=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        jwt_secret_key="test-secret-key",
        debug=False,
        log_level="WARNING",
    )


@pytest.fixture
def db_session(settings):
    """데이터 준비용 동기 세션 (앱과 같은 DB 파일 사용)"""
    engine = create_engine(settings.database_url_sync)
    Base.metadata.create_all(engine)
    session = Session(engine, expire_on_commit=False)
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def client(settings, db_session):
    """테스트 클라이언트 (lifespan 포함)"""
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture
def jwt_service(settings):
    return JWTService(settings)


@pytest.fixture
def auth_headers(jwt_service):
    """사용자 → Authorization 헤더"""

    def _headers(user: User) -> dict:
        token = jwt_service.create_access_token(user.id, user.role)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def make_user(db_session, password_hash):
    """사용자 생성 팩토리"""
    counter = {"n": 0}

    def _make(role: UserRole = UserRole.NORMAL_USER, name: str = None, is_active: bool = True) -> User:
        counter["n"] += 1
        user = User(
            name=name or f"{role.value}-{counter['n']}",
            email=f"{role.value}{counter['n']}@example.com",
            password_hash=password_hash,
            address="서울시 강남구",
            role=role,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture
def make_store(db_session):
    """매장 생성 팩토리"""
    counter = {"n": 0}

    def _make(owner: User = None, name: str = None, is_active: bool = True) -> Store:
        counter["n"] += 1
        store = Store(
            name=name or f"매장 {counter['n']}",
            email=f"store{counter['n']}@example.com",
            address="서울시 마포구",
            owner_id=owner.id if owner is not None else None,
            is_active=is_active,
        )
        db_session.add(store)
        db_session.commit()
        return store

    return _make


@pytest.fixture
def make_rating(db_session):
    """별점 직접 생성 (집계는 갱신하지 않음)"""

    def _make(user: User, store: Store, score: int, review: str = None, is_anonymous: bool = False) -> Rating:
        rating = Rating(
            user_id=user.id,
            store_id=store.id,
            score=score,
            review=review,
            is_anonymous=is_anonymous,
        )
        db_session.add(rating)
        db_session.commit()
        return rating

    return _make


@pytest.fixture
def admin(make_user):
    return make_user(UserRole.ADMIN, name="관리자")


@pytest.fixture
def owner(make_user):
    return make_user(UserRole.STORE_OWNER, name="점주")


@pytest.fixture
def store(make_store, owner):
    return make_store(owner=owner, name="테스트 매장")
