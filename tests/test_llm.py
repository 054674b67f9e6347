import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

import llm
from database import Base
from llm import (
    CompletionCache,
    CompletionResult,
    LLMError,
    LLMService,
    NoProvidersConfigured,
    Provider,
    ProviderError,
    parse_insights,
    check_connection,
)
from models import AIService, AIToken
from schemas import AITokenIn
from services import AITokenService


class FakeProvider(Provider):
    def __init__(self, name: str, reply: str = "", fail: bool = False) -> None:
        super().__init__(timeout=1)
        self.name = name
        self.reply = reply
        self.fail = fail
        self.calls = 0

    def complete(self, token, prompt, options):
        self.calls += 1
        if self.fail:
            raise ProviderError(self.name, "HTTP 503")
        return self.reply


def _session() -> Session:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    return Session(engine)


def _save_token(session: Session, service: AIService, user_id: int = 1) -> AIToken:
    row, _ = AITokenService(session, user_id).upsert(
        AITokenIn(service=service, token=f"{service.value}-secret-token")
    )
    return row


def _service(session: Session, providers, **kwargs) -> LLMService:
    kwargs.setdefault("max_retries", 1)
    kwargs.setdefault("retry_delay_secs", 0)
    kwargs.setdefault("cache", CompletionCache(ttl_secs=60, max_size=10))
    return LLMService(session, 1, providers, **kwargs)


def test_falls_back_to_next_provider_and_marks_it_used() -> None:
    with _session() as session:
        groq_row = _save_token(session, AIService.groq)
        hf_row = _save_token(session, AIService.huggingface)
        failing = FakeProvider("groq", fail=True)
        working = FakeProvider("huggingface", reply="B says hi")
        service = _service(session, [failing, working])

        result = service.generate_completion("hello")

        assert result.text == "B says hi"
        assert result.provider == "huggingface"
        assert service.last_provider == "huggingface"
        assert hf_row.last_used is not None
        assert groq_row.last_used is None


def test_providers_without_tokens_are_skipped() -> None:
    with _session() as session:
        _save_token(session, AIService.together)
        groq = FakeProvider("groq", reply="unused")
        together = FakeProvider("together", reply="ok")

        result = _service(session, [groq, together]).generate_completion("hello")

        assert result.provider == "together"
        assert groq.calls == 0


def test_no_active_tokens_raises_no_providers() -> None:
    with _session() as session:
        row = _save_token(session, AIService.groq)
        AITokenService(session, 1).toggle(row.id)

        with pytest.raises(NoProvidersConfigured):
            _service(session, [FakeProvider("groq", reply="x")]).generate_completion("hi")


def test_total_failure_raises_single_error_naming_last_failure() -> None:
    with _session() as session:
        _save_token(session, AIService.groq)
        _save_token(session, AIService.openrouter)
        providers = [FakeProvider("groq", fail=True), FakeProvider("openrouter", fail=True)]

        with pytest.raises(LLMError) as excinfo:
            _service(session, providers).generate_completion("hi")

        assert type(excinfo.value) is LLMError
        assert "All AI providers failed" in str(excinfo.value)
        assert "openrouter" in str(excinfo.value)


def test_retries_use_linear_backoff(monkeypatch) -> None:
    sleeps = []
    monkeypatch.setattr(llm.time, "sleep", sleeps.append)
    with _session() as session:
        _save_token(session, AIService.groq)
        provider = FakeProvider("groq", fail=True)

        with pytest.raises(LLMError):
            _service(
                session, [provider], max_retries=3, retry_delay_secs=0.5
            ).generate_completion("hi")

        assert provider.calls == 3
        assert sleeps == [0.5, 1.0]


def test_undecryptable_token_is_skipped() -> None:
    with _session() as session:
        session.add(
            AIToken(user_id=1, service=AIService.groq, token_encrypted="not:valid:data")
        )
        session.commit()
        _save_token(session, AIService.anthropic)
        groq = FakeProvider("groq", reply="never")
        anthropic = FakeProvider("anthropic", reply="from claude")

        result = _service(session, [groq, anthropic]).generate_completion("hi")

        assert result.provider == "anthropic"
        assert groq.calls == 0


def test_completions_are_cached_per_prompt() -> None:
    with _session() as session:
        _save_token(session, AIService.groq)
        provider = FakeProvider("groq", reply="cached answer")
        service = _service(session, [provider])

        service.generate_completion("same prompt")
        again = service.generate_completion("same prompt")
        service.generate_completion("other prompt")

        assert again.text == "cached answer"
        assert provider.calls == 2


def test_cache_hit_stamps_token_last_used() -> None:
    with _session() as session:
        row = _save_token(session, AIService.groq)
        provider = FakeProvider("groq", reply="cached answer")
        service = _service(session, [provider])

        service.generate_completion("same prompt")
        row.last_used = None
        again = service.generate_completion("same prompt")

        assert again.provider == "groq"
        assert provider.calls == 1
        assert row.last_used is not None


def test_cache_skipped_once_its_provider_is_deactivated() -> None:
    with _session() as session:
        groq_row = _save_token(session, AIService.groq)
        _save_token(session, AIService.together)
        groq = FakeProvider("groq", reply="from groq")
        together = FakeProvider("together", reply="from together")
        service = _service(session, [groq, together])

        service.generate_completion("same prompt")
        AITokenService(session, 1).toggle(groq_row.id)
        again = service.generate_completion("same prompt")

        assert again.provider == "together"
        assert together.calls == 1


def test_cache_evicts_oldest_entry() -> None:
    cache = CompletionCache(ttl_secs=60, max_size=2)
    for key in ("a", "b", "c"):
        cache.put((key,), CompletionResult(key, "groq", "m", 1))

    assert len(cache) == 2
    assert cache.get(("a",)) is None
    assert cache.get(("c",)).text == "c"


def test_financial_insights_parse_json_array() -> None:
    reply = (
        "Here you go:\n"
        '[{"type": "warning", "title": "Dining", "message": "Dining is up 40%.", '
        '"recommendation": "Cook at home twice a week.", "impact": "high", '
        '"confidence": 0.9}]'
    )
    with _session() as session:
        _save_token(session, AIService.groq)
        service = _service(session, [FakeProvider("groq", reply=reply)])

        payload = service.generate_financial_insights(
            {
                "income": 5000,
                "income_sources": 1,
                "expenses": 3000,
                "top_categories": [{"category": "Dining", "total": 800}],
                "savings_rate": 40.0,
                "emergency_fund": 9000,
                "months_of_expenses": 3.0,
                "net_worth": 20000,
                "total_bills": 400,
                "bills_variance_percent": 5.0,
            }
        )

        assert payload["provider"] == "groq"
        assert payload["insights"] == [
            {
                "type": "warning",
                "title": "Dining",
                "message": "Dining is up 40%.",
                "recommendation": "Cook at home twice a week.",
                "impact": "high",
            }
        ]


def test_invalid_insight_schema_falls_back_to_raw_text() -> None:
    text = '[{"type": "critical", "title": "x", "message": "y", "impact": "high"}]'

    insights = parse_insights(text)

    assert len(insights) == 1
    assert insights[0]["type"] == "info"
    assert insights[0]["message"] == text


def test_prose_reply_falls_back_to_single_insight() -> None:
    insights = parse_insights("Spend less on takeout.")

    assert [item["message"] for item in insights] == ["Spend less on takeout."]


def test_check_connection_reports_success_and_failure() -> None:
    ok = check_connection("groq", "token", providers=[FakeProvider("groq", reply="Connection successful")])
    failed = check_connection(
        AIService.together, "token", providers=[FakeProvider("together", fail=True)]
    )
    unknown = check_connection("mystery", "token", providers=[])

    assert ok["success"] is True
    assert ok["response"] == "Connection successful"
    assert failed["success"] is False
    assert "HTTP 503" in failed["message"]
    assert unknown["success"] is False
