"""Concurrency tests: one shared mangler, many simultaneous callers."""

import asyncio
import io
from concurrent.futures import ThreadPoolExecutor

import pytest
from fastapi.testclient import TestClient

from wordmangle.main import app
from wordmangle.mangler import Mangler


def test_shared_mangler_across_threads(corpus):
    mangler = Mangler(corpus, "concurrency-secret-0123456789")
    texts = [f"Request number {idx} carries words like Alpha and BRAVO" for idx in range(50)]
    expected = [mangler.mangle_string(text) for text in texts]

    def run(text: str) -> str:
        writer = io.StringIO()
        mangler.mangle_stream(io.StringIO(text), writer, chunk_size=3)
        return writer.getvalue()

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(run, texts))

    assert results == expected


@pytest.mark.asyncio
async def test_concurrent_requests_isolated():
    with TestClient(app, raise_server_exceptions=False) as client:
        texts = [f"Request {idx} -> secret project {idx}" for idx in range(10)]

        async def send(text: str):
            return await asyncio.to_thread(
                client.post,
                "/mangle",
                json={"text": text},
            )

        responses = await asyncio.gather(*(send(text) for text in texts))
        mangler = client.app.state.mangler

    assert all(response.status_code == 200 for response in responses)
    for original, response in zip(texts, responses):
        assert response.json()["mangled_text"] == mangler.mangle_string(original)
