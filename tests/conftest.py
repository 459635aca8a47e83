import os

os.environ.setdefault('DATABASE_URL', 'sqlite://')
os.environ.setdefault('JWT_SECRET_KEY', 'tutordesk-test-secret-key-0123456789abcdef')

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from tutordesk.database import Base  # noqa: E402
from tutordesk.models import availability, booking, lead  # noqa: E402,F401
from tutordesk.models.user import TutorSite, User  # noqa: E402


@pytest.fixture
def db_engine():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


def add_tutor(db, *, email: str, slug: str, name: str | None = None, timezone: str = 'UTC', published: bool = True):
    tutor = User(email=email, name=name, timezone=timezone)
    db.add(tutor)
    db.flush()
    db.add(TutorSite(tutor_id=tutor.id, slug=slug, published=published))
    db.commit()
    db.refresh(tutor)
    return tutor


@pytest.fixture
def tutor(db) -> User:
    return add_tutor(db, email='ada@example.com', slug='ada', name='Ada Lovelace')


@pytest.fixture
def other_tutor(db) -> User:
    return add_tutor(db, email='grace@example.com', slug='grace', name='Grace Hopper')


@pytest.fixture
def unpublished_tutor(db) -> User:
    return add_tutor(db, email='draft@example.com', slug='draft', published=False)
