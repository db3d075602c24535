"""Pytest configuration and fixtures for storyvoice tests."""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from storyvoice.config import generate_config
from storyvoice.errors import TTSAPIError
from storyvoice.providers.base import VoiceProvider


class FakeProvider(VoiceProvider):
    """In-memory provider recording every producer call."""

    def __init__(
        self, fail_on_texts: tuple[str, ...] = (), fail_clone: bool = False
    ) -> None:
        self.fail_on_texts = fail_on_texts
        self.fail_clone = fail_clone
        self.clone_calls: list[bytes] = []
        self.synth_calls: list[tuple[str, str]] = []

    async def clone_voice(
        self, name: str, sample: bytes, filename: str = "sample.mp3"
    ) -> str:
        self.clone_calls.append(sample)
        if self.fail_clone:
            raise TTSAPIError("Voice cloning failed: quota exceeded", 429)
        return f"voice-{len(self.clone_calls)}"

    async def synthesize(self, text: str, voice_id: str) -> bytes:
        self.synth_calls.append((text, voice_id))
        if text in self.fail_on_texts:
            raise TTSAPIError(f"Speech synthesis failed for {text!r}")
        return f"audio:{voice_id}:{text}".encode()


@pytest.fixture(autouse=True)
def isolate_dirs(tmp_path_factory, monkeypatch) -> Path:
    """Point config and data directories at a per-test temp directory."""
    tmp_path = tmp_path_factory.mktemp("isolated")
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("STORYVOICE_DATA_DIR", str(tmp_path / "data"))
    for var in (
        "STORYVOICE_DEFAULT_VOICE",
        "STORYVOICE_MODEL",
        "STORYVOICE_CORRUPT_POLICY",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr("storyvoice.config._cached_config", None)
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    # Pre-generate the config so no first-run notice reaches command output
    generate_config()
    return data_dir


@pytest.fixture
def fake_provider() -> FakeProvider:
    """Provider that succeeds for every input."""
    return FakeProvider()


@pytest.fixture
def provider_factory():
    """Build a FakeProvider with configured failures."""
    return FakeProvider
