import pytest

from mindwell.apps.api.core import llm
from mindwell.libs.llm_router import BaseProvider, LLMResponse, LLMRouter, ProviderFailureError
from mindwell.libs.schemas.settings import AppSettings


class FakeProvider(BaseProvider):
    def __init__(self, name: str, *, text: str | None = "ok", error: Exception | None = None) -> None:
        super().__init__(name)
        self.text = text
        self.error = error
        self.calls: list = []

    async def chat(self, *, messages, model, **kwargs):
        self.calls.append({"messages": messages, "model": model, **kwargs})
        if self.error is not None:
            raise self.error
        return LLMResponse(model=model, text=self.text, usage={"total_tokens": 12})


@pytest.fixture
def reset_router():
    yield
    llm.set_router(None)


@pytest.mark.asyncio
async def test_router_fails_over_in_order():
    router = LLMRouter()
    primary = FakeProvider("primary", error=RuntimeError("503"))
    backup = FakeProvider("backup", text="from backup")
    router.register_provider("primary", primary)
    router.register_provider("backup", backup)

    response = await router.chat(messages=[{"role": "user", "content": "hi"}], model="m")

    assert response.text == "from backup"
    assert response.provider == "backup"
    assert len(primary.calls) == 1


@pytest.mark.asyncio
async def test_router_raises_when_every_provider_fails():
    router = LLMRouter()
    router.register_provider("only", FakeProvider("only", error=RuntimeError("down")))

    with pytest.raises(ProviderFailureError) as excinfo:
        await router.chat(messages=[{"role": "user", "content": "hi"}], model="m")
    assert "only: down" in str(excinfo.value)


@pytest.mark.asyncio
async def test_router_without_providers_fails():
    with pytest.raises(ProviderFailureError):
        await LLMRouter().chat(messages=[{"role": "user", "content": "hi"}], model="m")


def test_set_order_rejects_unknown_providers():
    router = LLMRouter()
    router.register_provider("a", FakeProvider("a"))
    with pytest.raises(ValueError):
        router.set_order(["a", "missing"])


@pytest.mark.asyncio
async def test_generate_text_sends_single_user_message(reset_router):
    provider = FakeProvider("fake", text="  Take a breath.  ")
    router = LLMRouter()
    router.register_provider("fake", provider)
    llm.set_router(router)

    text = await llm.generate_text("How do I calm down?", model="test-model")

    assert text == "Take a breath."
    assert provider.calls[0]["messages"] == [{"role": "user", "content": "How do I calm down?"}]
    assert provider.calls[0]["model"] == "test-model"


@pytest.mark.asyncio
async def test_generate_text_rejects_empty_completion(reset_router):
    router = LLMRouter()
    router.register_provider("fake", FakeProvider("fake", text="   "))
    llm.set_router(router)

    with pytest.raises(llm.LLMResponseError):
        await llm.generate_text("hello", model="m")


def test_build_router_skips_providers_without_keys():
    settings = AppSettings(LLM_PROVIDER="both", OPENROUTER_API_KEY="or-key", OPENAI_API_KEY=None)
    router = llm.build_router(settings)
    assert router.providers == ["openrouter"]
