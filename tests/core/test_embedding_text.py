from types import SimpleNamespace

import pytest

from tagsense.core.config import EmbeddingSettings
from tagsense.core.embedding import EmbeddingService


DIMENSIONS = 64


def _fake_vector(text: str) -> list[float]:
    return [float(len(text)), 1.0] + [0.0] * (DIMENSIONS - 2)


class FakeEmbeddings:
    def __init__(self):
        self.inputs = []

    async def create(self, model, input):
        self.inputs.append(input)
        texts = input if isinstance(input, list) else [input]
        data = [
            SimpleNamespace(index=i, embedding=_fake_vector(text))
            for i, text in enumerate(texts)
        ]
        # Responses may arrive out of order
        return SimpleNamespace(data=list(reversed(data)))


def _service():
    service = EmbeddingService(EmbeddingSettings(api_key="test", dimensions=DIMENSIONS))
    service._client = SimpleNamespace(embeddings=FakeEmbeddings())
    return service


def test_build_tag_text():
    service = _service()

    assert service.build_tag_text("  frontend ") == "Tag: frontend"


def test_build_entity_text_with_description_and_tags():
    service = _service()

    text = service.build_entity_text(
        name="Website redesign",
        entity_type="project",
        description="  New landing pages  ",
        tag_names=["design", "Design", " ", "marketing"],
    )

    assert text == "Project: Website redesign\nNew landing pages\nTags: design, marketing"


def test_build_entity_text_name_only():
    service = _service()

    assert service.build_entity_text("Assets", "folder", description="  ") == "Folder: Assets"


@pytest.mark.asyncio
async def test_embed_batch_keeps_input_order_and_zeroes_blanks():
    service = _service()

    vectors = await service.embed_batch(["ab", "", "abcd"], batch_size=2)

    assert vectors == [_fake_vector("ab"), [0.0] * DIMENSIONS, _fake_vector("abcd")]
    assert service.client.embeddings.inputs == [["ab", " "], ["abcd"]]


@pytest.mark.asyncio
async def test_embed_batch_empty_input_makes_no_calls():
    service = _service()

    assert await service.embed_batch([]) == []
    assert service.client.embeddings.inputs == []


@pytest.mark.asyncio
async def test_embed_text_blank_returns_zero_vector():
    service = _service()

    assert await service.embed_text("   ") == [0.0] * DIMENSIONS
    assert await service.embed_text("abc") == _fake_vector("abc")
    assert service.client.embeddings.inputs == ["abc"]
