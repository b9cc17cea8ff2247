import hashlib
import re
from collections.abc import AsyncGenerator, Awaitable, Callable, Sequence

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from qdrant_client import AsyncQdrantClient
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from app.api.deps import get_pipeline
from app.core.config import Settings
from app.core.errors import UpstreamUnavailable
from app.db.session import get_session
from app.main import app
from app.models import Answer, Form, Question, Response
from app.services.openai_client import ChatSample, EmbeddingBatch
from app.services.processing import MatchingPipeline, build_pipeline
from app.services.synthesizer import NO_ANSWER_PLACEHOLDER

_TOKEN = re.compile(r"[a-z0-9']+")
_SUBJECT = re.compile(r"summary of (.+?) based on")


def hashed_vector(text: str, dim: int) -> list[float]:
    vector = [0.0] * dim
    for token in _TOKEN.findall(text.lower()):
        bucket = int(hashlib.md5(token.encode("utf-8")).hexdigest(), 16) % dim
        vector[bucket] += 1.0
    return vector


class FakeOpenAIService:
    """Deterministic stand-in for OpenAIService.

    Chat completions echo the non-empty answers back as a short profile; embeddings
    are bag-of-words hashes unless ``vectors`` maps the exact text to a vector.
    """

    def __init__(
        self,
        *,
        dim: int = 32,
        vectors: dict[str, list[float]] | None = None,
        fail_summary_for: Sequence[str] = (),
        fail_embed_for: Sequence[str] = (),
        finish_reason: str = "stop",
        completion_text: str | None = None,
    ) -> None:
        self.dim = dim
        self.vectors = vectors or {}
        self.fail_summary_for = tuple(fail_summary_for)
        self.fail_embed_for = tuple(fail_embed_for)
        self.finish_reason = finish_reason
        self.completion_text = completion_text
        self.chat_calls: list[list[dict[str, str]]] = []
        self.embed_calls: list[list[str]] = []

    @property
    def is_configured(self) -> bool:
        return True

    async def complete_chat(self, *, messages, model=None, temperature=None, max_tokens=None) -> ChatSample:
        self.chat_calls.append(messages)
        prompt = messages[-1]["content"]
        if any(marker in prompt for marker in self.fail_summary_for):
            raise UpstreamUnavailable("generative_text", "simulated outage")

        if self.completion_text is not None:
            text = self.completion_text
        else:
            match = _SUBJECT.search(prompt)
            subject = match.group(1) if match else "This person"
            answers = [
                line.split("Answer:", 1)[1].strip()
                for line in prompt.splitlines()
                if line.strip().startswith("Answer:")
            ]
            interests = "; ".join(answer for answer in answers if answer != NO_ANSWER_PLACEHOLDER)
            text = f"## Profile\n{subject} is a thoughtful person whose interests include {interests}."
        return ChatSample(
            text=text,
            model=model or "fake-chat",
            tokens=len(text.split()),
            finish_reason=self.finish_reason,
            usage=None,
        )

    async def embed_texts(self, texts, *, model=None, dimensions=None) -> EmbeddingBatch:
        docs = list(texts)
        self.embed_calls.append(docs)
        if any(marker in text for text in docs for marker in self.fail_embed_for):
            raise UpstreamUnavailable("embedding", "simulated outage")
        dim = dimensions or self.dim
        vectors = [list(self.vectors.get(text, hashed_vector(text, dim))) for text in docs]
        return EmbeddingBatch(vectors=vectors, model=model or "fake-embedding", dim=dim)


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        openai_api_key=None,
        embedding_dim=32,
        qdrant_url=None,
        qdrant_collection="test_responses",
        qdrant_scroll_page_size=2,
        summary_min_words=5,
        summary_max_words=60,
        processing_concurrency=2,
    )


@pytest.fixture()
def fake_openai(settings: Settings) -> FakeOpenAIService:
    return FakeOpenAIService(dim=settings.embedding_dim)


@pytest_asyncio.fixture()
async def qdrant() -> AsyncGenerator[AsyncQdrantClient, None]:
    client = AsyncQdrantClient(location=":memory:")
    try:
        yield client
    finally:
        await client.close()


@pytest.fixture()
def pipeline(settings: Settings, qdrant: AsyncQdrantClient, fake_openai: FakeOpenAIService) -> MatchingPipeline:
    return build_pipeline(settings, qdrant_client=qdrant, openai_service=fake_openai)


@pytest_asyncio.fixture()
async def session() -> AsyncGenerator[AsyncSession, None]:
    engine: AsyncEngine = create_async_engine("sqlite+aiosqlite:///:memory:", connect_args={"check_same_thread": False})
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    async_session = AsyncSession(engine, expire_on_commit=False)
    try:
        yield async_session
    finally:
        await async_session.close()
        await engine.dispose()


@pytest_asyncio.fixture()
async def client(session: AsyncSession, pipeline: MatchingPipeline) -> AsyncGenerator[AsyncClient, None]:
    async def _override_session():
        yield session

    app.dependency_overrides[get_session] = _override_session
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as test_client:
        yield test_client
    app.dependency_overrides.clear()


SeedForm = Callable[..., Awaitable[tuple[Form, list[Question], list[Response]]]]


@pytest.fixture()
def seed_form(session: AsyncSession) -> SeedForm:
    """Create a published form whose respondents answer questions by position.

    ``respondents`` maps a respondent name to one answer per question; ``None``
    leaves that question unanswered.
    """

    async def _seed(
        *,
        questions: Sequence[str] = ("What do you do on weekends?", "What are you curious about?"),
        respondents: dict[str, Sequence[str | None]] | None = None,
        title: str = "Meetup intake",
        description: str = "Tell us about yourself",
    ) -> tuple[Form, list[Question], list[Response]]:
        form = Form(title=title, description=description, is_published=True)
        session.add(form)
        await session.flush()

        question_rows = [Question(form_id=form.id, text=text, position=index) for index, text in enumerate(questions)]
        session.add_all(question_rows)
        await session.flush()

        response_rows: list[Response] = []
        for name, answers in (respondents or {}).items():
            response = Response(
                form_id=form.id,
                respondent_name=name,
                respondent_email=f"{name.lower()}@example.com",
            )
            session.add(response)
            await session.flush()
            for question, text in zip(question_rows, answers):
                if text is not None:
                    session.add(Answer(response_id=response.id, question_id=question.id, text=text, time_spent=12))
            response_rows.append(response)

        await session.commit()
        return form, question_rows, response_rows

    return _seed
