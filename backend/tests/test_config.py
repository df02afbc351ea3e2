import os

import pytest

from midi_guitar.config import ENV_PREFIX, BackpressurePolicy, TrackerConfig, load_config
from midi_guitar.errors import InvalidConfiguration


@pytest.fixture
def clean_env():
    def scrub():
        for key in list(os.environ):
            if key.startswith(ENV_PREFIX):
                del os.environ[key]

    scrub()
    yield
    scrub()


class TestTrackerConfig:

    def test_defaults(self):
        config = TrackerConfig()

        assert config.sample_rate == 44100
        assert config.frame_length == 2048
        assert config.hop == 2048
        assert config.yin_threshold == 0.15
        assert config.note_threshold == 0.8
        assert config.velocity == 100
        assert config.policy is BackpressurePolicy.LATEST

    @pytest.mark.parametrize("kwargs", [
        {"sample_rate": 0},
        {"sample_rate": -1},
        {"frame_length": 0},
        {"frame_length": 2049},
        {"hop_length": 0},
        {"frame_length": 1024, "hop_length": 2048},
        {"yin_threshold": 0.0},
        {"yin_threshold": 1.0},
        {"note_threshold": 1.5},
        {"velocity": 128},
        {"velocity": -1},
        {"midi_channel": 16},
        {"onset_threshold": -0.5},
        {"policy": "oldest"},
    ])
    def test_rejects_invalid(self, kwargs):
        with pytest.raises(InvalidConfiguration):
            TrackerConfig(**kwargs)

    def test_policy_from_string(self):
        assert TrackerConfig(policy="all").policy is BackpressurePolicy.ALL

    def test_frozen(self):
        config = TrackerConfig()
        with pytest.raises(Exception):
            config.velocity = 10

    def test_frame_duration(self):
        assert TrackerConfig(sample_rate=1000, frame_length=500).frame_duration_s == pytest.approx(0.5)


class TestLoadConfig:

    def test_reads_environment(self, clean_env, monkeypatch):
        monkeypatch.setenv(ENV_PREFIX + "FRAME_LENGTH", "4096")
        monkeypatch.setenv(ENV_PREFIX + "NOTE_THRESHOLD", "0.6")

        config = load_config()

        assert config.frame_length == 4096
        assert config.note_threshold == pytest.approx(0.6)

    def test_overrides_win(self, clean_env, monkeypatch):
        monkeypatch.setenv(ENV_PREFIX + "VELOCITY", "30")

        assert load_config(velocity=90).velocity == 90

    def test_none_overrides_ignored(self, clean_env, monkeypatch):
        monkeypatch.setenv(ENV_PREFIX + "VELOCITY", "30")

        assert load_config(velocity=None).velocity == 30

    def test_env_file(self, clean_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text(f"{ENV_PREFIX}YIN_THRESHOLD=0.1\n{ENV_PREFIX}POLICY=all\n")

        config = load_config(env_file=str(env_file))

        assert config.yin_threshold == pytest.approx(0.1)
        assert config.policy is BackpressurePolicy.ALL

    def test_invalid_environment(self, clean_env, monkeypatch):
        monkeypatch.setenv(ENV_PREFIX + "SAMPLE_RATE", "-8000")

        with pytest.raises(InvalidConfiguration):
            load_config()
