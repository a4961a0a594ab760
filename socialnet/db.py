"""
Document persistence for users, profiles and posts.

Each entity gets its own repository interface. Two implementations are
provided: an in-memory store for development and tests, and a SQLAlchemy
store that keeps nested profile/post data in JSON document columns.
"""

from __future__ import annotations

import copy
import threading
import uuid
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, ContextManager, Dict, Optional, Protocol

from sqlalchemy import JSON, Column, String, create_engine, delete, select
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class UserRecord:
    name: str
    email: str
    password: str
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=utcnow)

    def as_dict(self, *, include_password: bool = False) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "created_at": self.created_at,
        }
        if include_password:
            data["password"] = self.password
        return data


@dataclass
class Experience:
    title: str
    location: Optional[str] = None
    id: str = field(default_factory=new_id)


@dataclass
class Social:
    facebook: Optional[str] = None
    instagram: Optional[str] = None


@dataclass
class ProfileRecord:
    user: str
    username: str
    birthday: str
    website: str = ""
    skills: list[str] = field(default_factory=list)
    bio: Optional[str] = None
    experience: list[Experience] = field(default_factory=list)
    social: Social = field(default_factory=Social)
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=utcnow)
    updated_at: str = field(default_factory=utcnow)

    def as_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "ProfileRecord":
        data = dict(data)
        data["experience"] = [Experience(**exp) for exp in data.get("experience") or []]
        data["social"] = Social(**(data.get("social") or {}))
        return cls(**data)


# Fields a profile submission may set; everything else is owned by the store.
PROFILE_FIELDS = ("username", "birthday", "website", "skills", "bio", "social")


def apply_profile_fields(
    existing: Optional[ProfileRecord], user_id: str, fields: dict
) -> ProfileRecord:
    """Merge submitted fields into an existing profile or build a new one."""
    values = {k: v for k, v in fields.items() if k in PROFILE_FIELDS}
    if isinstance(values.get("social"), dict):
        values["social"] = Social(**values["social"])
    if existing is None:
        return ProfileRecord(user=user_id, **values)
    for key, value in values.items():
        setattr(existing, key, value)
    existing.updated_at = utcnow()
    return existing


@dataclass
class Like:
    profile: str
    id: str = field(default_factory=new_id)


@dataclass
class Comment:
    profile: str
    text: str
    id: str = field(default_factory=new_id)
    date: str = field(default_factory=utcnow)


# Keys of a post that request bodies can never overwrite.
POST_RESERVED_KEYS = frozenset(
    {"id", "profile", "likes", "comments", "created_at", "updated_at"}
)


@dataclass
class PostRecord:
    profile: str
    text: str
    likes: list[Like] = field(default_factory=list)
    comments: list[Comment] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=utcnow)
    updated_at: str = field(default_factory=utcnow)

    def as_dict(self) -> dict:
        data = dict(self.extra)
        data.update(
            {
                "id": self.id,
                "profile": self.profile,
                "text": self.text,
                "likes": [asdict(like) for like in self.likes],
                "comments": [asdict(comment) for comment in self.comments],
                "created_at": self.created_at,
                "updated_at": self.updated_at,
            }
        )
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "PostRecord":
        extra = {
            k: v
            for k, v in data.items()
            if k not in POST_RESERVED_KEYS and k != "text"
        }
        return cls(
            id=data["id"],
            profile=data["profile"],
            text=data["text"],
            likes=[Like(**like) for like in data.get("likes") or []],
            comments=[Comment(**c) for c in data.get("comments") or []],
            extra=extra,
            created_at=data["created_at"],
            updated_at=data["updated_at"],
        )

    def liked_by(self, profile_id: str) -> bool:
        return any(like.profile == profile_id for like in self.likes)

    def find_comment(self, comment_id: str) -> Optional[Comment]:
        return next((c for c in self.comments if c.id == comment_id), None)


class UserRepository(Protocol):
    def get(self, user_id: str) -> Optional[UserRecord]:
        ...

    def find_by_email(self, email: str) -> Optional[UserRecord]:
        ...

    def add(self, user: UserRecord) -> UserRecord:
        ...

    def delete(self, user_id: str) -> bool:
        ...


class ProfileRepository(Protocol):
    def get(self, profile_id: str) -> Optional[ProfileRecord]:
        ...

    def find_by_user(self, user_id: str) -> Optional[ProfileRecord]:
        ...

    def find_by_username(self, username: str) -> Optional[ProfileRecord]:
        ...

    def list_all(self) -> list[ProfileRecord]:
        ...

    def upsert_for_user(self, user_id: str, fields: dict) -> ProfileRecord:
        ...

    def save(self, profile: ProfileRecord) -> ProfileRecord:
        ...

    def delete_for_user(self, user_id: str) -> bool:
        ...


class PostRepository(Protocol):
    def get(self, post_id: str) -> Optional[PostRecord]:
        ...

    def list_all(self) -> list[PostRecord]:
        """Return every post, most recently created first."""
        ...

    def add(self, post: PostRecord) -> PostRecord:
        ...

    def save(self, post: PostRecord) -> PostRecord:
        ...

    def delete(self, post_id: str) -> bool:
        ...

    def delete_by_profile(self, profile_id: str) -> int:
        ...


class DbClient(Protocol):
    """Bundle of the three entity repositories."""

    users: UserRepository
    profiles: ProfileRepository
    posts: PostRepository


class InMemoryUserRepository:
    def __init__(self):
        self.items: Dict[str, UserRecord] = {}

    def get(self, user_id: str) -> Optional[UserRecord]:
        user = self.items.get(user_id)
        return copy.deepcopy(user) if user else None

    def find_by_email(self, email: str) -> Optional[UserRecord]:
        for user in self.items.values():
            if user.email == email:
                return copy.deepcopy(user)
        return None

    def add(self, user: UserRecord) -> UserRecord:
        self.items[user.id] = copy.deepcopy(user)
        return user

    def delete(self, user_id: str) -> bool:
        return self.items.pop(user_id, None) is not None


class InMemoryProfileRepository:
    def __init__(self):
        self.items: Dict[str, ProfileRecord] = {}

    def get(self, profile_id: str) -> Optional[ProfileRecord]:
        profile = self.items.get(profile_id)
        return copy.deepcopy(profile) if profile else None

    def _find(self, **criteria) -> Optional[ProfileRecord]:
        for profile in self.items.values():
            if all(getattr(profile, k) == v for k, v in criteria.items()):
                return copy.deepcopy(profile)
        return None

    def find_by_user(self, user_id: str) -> Optional[ProfileRecord]:
        return self._find(user=user_id)

    def find_by_username(self, username: str) -> Optional[ProfileRecord]:
        return self._find(username=username)

    def list_all(self) -> list[ProfileRecord]:
        return [copy.deepcopy(p) for p in self.items.values()]

    def upsert_for_user(self, user_id: str, fields: dict) -> ProfileRecord:
        profile = apply_profile_fields(self.find_by_user(user_id), user_id, fields)
        return self.save(profile)

    def save(self, profile: ProfileRecord) -> ProfileRecord:
        profile.updated_at = utcnow()
        self.items[profile.id] = copy.deepcopy(profile)
        return profile

    def delete_for_user(self, user_id: str) -> bool:
        profile = self.find_by_user(user_id)
        if not profile:
            return False
        del self.items[profile.id]
        return True


class InMemoryPostRepository:
    def __init__(self):
        self.items: Dict[str, PostRecord] = {}

    def get(self, post_id: str) -> Optional[PostRecord]:
        post = self.items.get(post_id)
        return copy.deepcopy(post) if post else None

    def list_all(self) -> list[PostRecord]:
        # Reverse insertion order first so ties on created_at stay newest-first.
        posts = [copy.deepcopy(p) for p in reversed(list(self.items.values()))]
        return sorted(posts, key=lambda p: p.created_at, reverse=True)

    def add(self, post: PostRecord) -> PostRecord:
        return self.save(post)

    def save(self, post: PostRecord) -> PostRecord:
        post.updated_at = utcnow()
        self.items[post.id] = copy.deepcopy(post)
        return post

    def delete(self, post_id: str) -> bool:
        return self.items.pop(post_id, None) is not None

    def delete_by_profile(self, profile_id: str) -> int:
        doomed = [pid for pid, p in self.items.items() if p.profile == profile_id]
        for post_id in doomed:
            del self.items[post_id]
        return len(doomed)


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.users = InMemoryUserRepository()
        self.profiles = InMemoryProfileRepository()
        self.posts = InMemoryPostRepository()

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.users.items.clear()
        self.profiles.items.clear()
        self.posts.items.clear()


class SqlUserRepository:
    def __init__(self, session_factory: Callable[[], ContextManager[Session]]):
        self.Session = session_factory

    @staticmethod
    def _to_record(row: "UserRow") -> UserRecord:
        return UserRecord(
            id=row.id,
            name=row.name,
            email=row.email,
            password=row.password,
            created_at=row.created_at,
        )

    def get(self, user_id: str) -> Optional[UserRecord]:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            return self._to_record(row) if row else None

    def find_by_email(self, email: str) -> Optional[UserRecord]:
        with self.Session() as session:
            stmt = select(UserRow).where(UserRow.email == email)
            row = session.execute(stmt).scalar_one_or_none()
            return self._to_record(row) if row else None

    def add(self, user: UserRecord) -> UserRecord:
        with self.Session() as session:
            session.add(
                UserRow(
                    id=user.id,
                    name=user.name,
                    email=user.email,
                    password=user.password,
                    created_at=user.created_at,
                )
            )
            session.commit()
        return user

    def delete(self, user_id: str) -> bool:
        with self.Session() as session:
            result = session.execute(delete(UserRow).where(UserRow.id == user_id))
            session.commit()
            return bool(result.rowcount)


class SqlProfileRepository:
    def __init__(self, session_factory: Callable[[], ContextManager[Session]]):
        self.Session = session_factory

    @staticmethod
    def _to_record(row: "ProfileRow") -> ProfileRecord:
        return ProfileRecord.from_dict(row.document)

    @staticmethod
    def _write(row: "ProfileRow", profile: ProfileRecord) -> None:
        row.user_id = profile.user
        row.username = profile.username
        row.created_at = profile.created_at
        row.updated_at = profile.updated_at
        row.document = profile.as_dict()

    def _find_one(self, *criteria) -> Optional[ProfileRecord]:
        with self.Session() as session:
            stmt = select(ProfileRow).where(*criteria).limit(1)
            row = session.execute(stmt).scalar_one_or_none()
            return self._to_record(row) if row else None

    def get(self, profile_id: str) -> Optional[ProfileRecord]:
        return self._find_one(ProfileRow.id == profile_id)

    def find_by_user(self, user_id: str) -> Optional[ProfileRecord]:
        return self._find_one(ProfileRow.user_id == user_id)

    def find_by_username(self, username: str) -> Optional[ProfileRecord]:
        return self._find_one(ProfileRow.username == username)

    def list_all(self) -> list[ProfileRecord]:
        with self.Session() as session:
            rows = session.execute(
                select(ProfileRow).order_by(ProfileRow.created_at.asc())
            ).scalars()
            return [self._to_record(row) for row in rows]

    def upsert_for_user(self, user_id: str, fields: dict) -> ProfileRecord:
        with self.Session() as session:
            stmt = (
                select(ProfileRow)
                .where(ProfileRow.user_id == user_id)
                .with_for_update()
            )
            row = session.execute(stmt).scalar_one_or_none()
            existing = self._to_record(row) if row else None
            profile = apply_profile_fields(existing, user_id, fields)
            if row is None:
                row = ProfileRow(id=profile.id)
                session.add(row)
            self._write(row, profile)
            session.commit()
            return profile

    def save(self, profile: ProfileRecord) -> ProfileRecord:
        profile.updated_at = utcnow()
        with self.Session() as session:
            row = session.get(ProfileRow, profile.id)
            if row is None:
                row = ProfileRow(id=profile.id)
                session.add(row)
            self._write(row, profile)
            session.commit()
        return profile

    def delete_for_user(self, user_id: str) -> bool:
        with self.Session() as session:
            result = session.execute(
                delete(ProfileRow).where(ProfileRow.user_id == user_id)
            )
            session.commit()
            return bool(result.rowcount)


class SqlPostRepository:
    def __init__(self, session_factory: Callable[[], ContextManager[Session]]):
        self.Session = session_factory

    def get(self, post_id: str) -> Optional[PostRecord]:
        with self.Session() as session:
            row = session.get(PostRow, post_id)
            return PostRecord.from_dict(row.document) if row else None

    def list_all(self) -> list[PostRecord]:
        with self.Session() as session:
            rows = session.execute(
                select(PostRow).order_by(PostRow.created_at.desc())
            ).scalars()
            return [PostRecord.from_dict(row.document) for row in rows]

    def add(self, post: PostRecord) -> PostRecord:
        return self.save(post)

    def save(self, post: PostRecord) -> PostRecord:
        post.updated_at = utcnow()
        with self.Session() as session:
            row = session.get(PostRow, post.id)
            if row is None:
                row = PostRow(id=post.id)
                session.add(row)
            row.profile_id = post.profile
            row.created_at = post.created_at
            row.updated_at = post.updated_at
            row.document = post.as_dict()
            session.commit()
        return post

    def delete(self, post_id: str) -> bool:
        with self.Session() as session:
            result = session.execute(delete(PostRow).where(PostRow.id == post_id))
            session.commit()
            return bool(result.rowcount)

    def delete_by_profile(self, profile_id: str) -> int:
        with self.Session() as session:
            result = session.execute(
                delete(PostRow).where(PostRow.profile_id == profile_id)
            )
            session.commit()
            return result.rowcount or 0


class SqlDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDbClient")
        engine_kwargs: dict = {"future": True, "pool_pre_ping": True}
        if database_url.startswith("sqlite") and ":memory:" in database_url:
            # One shared connection so every thread sees the same database;
            # sessions on it are serialized so transactions never interleave.
            engine_kwargs.update(
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
        else:
            engine_kwargs["pool_recycle"] = 1800
        self.engine = create_engine(database_url, **engine_kwargs)
        self._sessionmaker = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        self._lock = (
            threading.Lock() if engine_kwargs.get("poolclass") is StaticPool else None
        )
        Base.metadata.create_all(self.engine)
        self.users = SqlUserRepository(self.Session)
        self.profiles = SqlProfileRepository(self.Session)
        self.posts = SqlPostRepository(self.Session)

    @contextmanager
    def Session(self):
        if self._lock is None:
            with self._sessionmaker() as session:
                yield session
            return
        with self._lock:
            with self._sessionmaker() as session:
                yield session


Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True, index=True)
    password = Column(String, nullable=False)
    created_at = Column(String, nullable=False)


class ProfileRow(Base):
    __tablename__ = "profiles"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, unique=True, index=True)
    username = Column(String, nullable=False, index=True)
    document = Column(JSON, nullable=False)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)


class PostRow(Base):
    __tablename__ = "posts"

    id = Column(String, primary_key=True)
    profile_id = Column(String, nullable=False, index=True)
    document = Column(JSON, nullable=False)
    created_at = Column(String, nullable=False, index=True)
    updated_at = Column(String, nullable=False)
