"""Test configuration for the mangling service."""

import os
import tempfile
from pathlib import Path

import pytest

from wordmangle.config import get_settings
from wordmangle.corpus import Corpus, read_corpus
from wordmangle.mangler import Mangler

CORPUS_PATH = Path(__file__).with_name("corpus.txt")
SALT_A = "123456789012345678901234567890"

os.environ.setdefault("MANGLE_SECRET", SALT_A)
os.environ.setdefault("MANGLE_CORPUS_PATH", str(CORPUS_PATH))
os.environ.setdefault("MANGLE_LOG_DIRECTORY", tempfile.mkdtemp(prefix="wordmangle-logs-"))


@pytest.fixture(autouse=True)
def reset_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(scope="session")
def corpus() -> Corpus:
    return read_corpus(CORPUS_PATH)


@pytest.fixture
def mangler(corpus: Corpus) -> Mangler:
    return Mangler(corpus, SALT_A)
