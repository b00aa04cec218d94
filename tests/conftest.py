from collections.abc import AsyncGenerator

import pytest
from blog_models import Base, Comment, Post, Profile, User
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from cqrs_ddd_queryable.metadata import MetadataRegistry
from cqrs_ddd_queryable.persistence import build_metadata_registry


@pytest.fixture
def registry() -> MetadataRegistry:
    return build_metadata_registry(Base)


@pytest.fixture
async def session() -> AsyncGenerator[AsyncSession, None]:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    async with session_factory() as session:
        yield session
    await engine.dispose()


@pytest.fixture
async def seeded(session: AsyncSession) -> AsyncSession:
    """
    john (1): posts 1 (published, 2 comments) and 2 (draft), a profile
    jane (2): post 3 (published)
    bob  (3): nothing
    user04..user15 (4-15): age 40, nothing
    """
    session.add_all(
        [
            User(id=1, name="john", email="john@example.com", age=30),
            User(id=2, name="jane", email="jane@example.com", age=25),
            User(id=3, name="bob", email="bob@example.com", age=None),
            *[
                User(id=i, name=f"user{i:02d}", email=f"u{i}@example.com", age=40)
                for i in range(4, 16)
            ],
        ]
    )
    await session.flush()
    session.add_all(
        [
            Post(id=1, title="Hello", published=True, author_id=1),
            Post(id=2, title="Draft", published=False, author_id=1),
            Post(id=3, title="Jane's post", published=True, author_id=2),
            Profile(id=1, bio="Writer", user_id=1),
        ]
    )
    await session.flush()
    session.add_all(
        [
            Comment(id=1, body="Nice", post_id=1),
            Comment(id=2, body="Great", post_id=1),
        ]
    )
    await session.commit()
    session.expunge_all()
    return session
