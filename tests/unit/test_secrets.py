"""
Unit tests for SecretsManager.
"""

import pytest

from beacon.core.exceptions import MissingSecretError
from beacon.core.secrets import SecretsManager


@pytest.fixture
def secrets_file(tmp_path):
    path = tmp_path / "secrets.env"
    path.write_text("DiscordToken=file-token\nOtherSecret=from-file\n")
    return path


class TestSecretsManager:
    def test_reads_secrets_file(self, secrets_file):
        """Secrets are read from the secrets file."""
        secrets = SecretsManager([secrets_file], environ={})

        assert secrets.get_secret("DiscordToken") == "file-token"

    def test_environment_overrides_file(self, secrets_file):
        """Environment values win over the file."""
        secrets = SecretsManager([secrets_file], environ={"DiscordToken": "env-token"})

        assert secrets.get_secret("DiscordToken") == "env-token"
        assert secrets.get_secret("OtherSecret") == "from-file"

    def test_missing_file_is_ignored(self, tmp_path):
        """A missing secrets file is not an error."""
        secrets = SecretsManager([tmp_path / "absent.env"], environ={"DiscordToken": "env-token"})

        assert secrets.get_secret("DiscordToken") == "env-token"

    def test_unknown_secret_is_none(self):
        """Unknown names return None."""
        assert SecretsManager(environ={}).get_secret("Nope") is None

    def test_required_secret_raises_when_missing(self):
        """A missing required secret raises MissingSecretError."""
        with pytest.raises(MissingSecretError) as exc_info:
            SecretsManager(environ={}).get_required_secret("DiscordToken")

        assert exc_info.value.message == "Failed to find secret with name:'DiscordToken'"

    def test_missing_secret_serializes_for_logging(self):
        """The error flattens to a loggable dict naming the secret."""
        with pytest.raises(MissingSecretError) as exc_info:
            SecretsManager(environ={}).get_required_secret("DiscordToken")

        assert exc_info.value.to_dict() == {
            "error_type": "MissingSecretError",
            "error_code": "MISSING_SECRET",
            "message": "Failed to find secret with name:'DiscordToken'",
            "details": {"secret_name": "DiscordToken"},
            "severity": "critical",
        }

    def test_required_secret_raises_when_empty(self):
        """An empty required secret counts as missing."""
        with pytest.raises(MissingSecretError):
            SecretsManager(environ={"DiscordToken": ""}).get_required_secret("DiscordToken")

    def test_uses_process_environment_by_default(self, monkeypatch):
        """Without environ the process environment is used."""
        monkeypatch.setenv("BeaconTestSecret", "value")

        assert SecretsManager().get_required_secret("BeaconTestSecret") == "value"
