import asyncio
from pathlib import Path
from typing import List

import pytest

from routeguard.access.factory import build_storage
from routeguard.access.storage import FileStorage, MemoryStorage
from routeguard.core.config import GuardConfigManager, GuardSettings, StorageSettings, load_settings
from routeguard.utils.errors import ConfigurationError

CONFIG = """
basename: /app
resources:
  - patterns: ["/login"]
    permissions: ["__anonymous__"]
  - patterns:
      - path: /Reports
        case_sensitive: true
    permissions: ["reports"]
    labels: ["__signatured__"]
behave:
  access_denied_path: /nope
voter:
  hierarchy: "admin>reports"
  all: true
session:
  signature_retry_limit: 5
"""


def test_load_yaml_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / "routeguard.yml"
    config_path.write_text(CONFIG, encoding="utf-8")
    monkeypatch.setenv("ROUTEGUARD_CONFIG", str(config_path))
    manager = GuardConfigManager()
    settings = asyncio.run(manager.load())

    assert settings.basename == "/app"
    assert settings.voter.all
    assert settings.session.signature_retry_limit == 5
    assert settings.session.max_chain == 16
    reports = settings.resources[1].to_resource()
    assert reports.signatured
    assert reports.patterns[0].case_sensitive
    behave = settings.behave.to_config()
    assert behave.access_denied_path == "/nope"
    assert behave.not_authentication_path == "/login"


def test_load_toml_config(tmp_path: Path) -> None:
    config_path = tmp_path / "routeguard.toml"
    config_path.write_text(
        '[[resources]]\npatterns = ["/*"]\npermissions = ["__authenticated__"]\n\n'
        '[storage]\nbackend = "file"\npath = "identity.json"\n',
        encoding="utf-8",
    )
    settings = asyncio.run(GuardConfigManager(config_path).load())
    assert settings.resources[0].to_resource().authenticated
    assert settings.storage.backend == "file"


def test_defaults() -> None:
    settings = GuardSettings()
    resources = [item.to_resource() for item in settings.resources]
    assert resources[0].anonymous
    assert resources[0].has_pattern("/signature")
    assert resources[1].authenticated
    assert settings.behave.not_signature_path == "/signature"
    assert not settings.disabled


def test_missing_file_raises(tmp_path: Path) -> None:
    manager = GuardConfigManager(tmp_path / "absent.yml")
    with pytest.raises(ConfigurationError):
        asyncio.run(manager.load())


def test_invalid_settings_raise(tmp_path: Path) -> None:
    config_path = tmp_path / "bad.yml"
    config_path.write_text("resources:\n  - patterns: []\n", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        asyncio.run(GuardConfigManager(config_path).load())

    config_path.write_text("resources: []\n", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        asyncio.run(GuardConfigManager(config_path).load())


def test_unsupported_format(tmp_path: Path) -> None:
    config_path = tmp_path / "routeguard.ini"
    config_path.write_text("[x]\n", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        asyncio.run(GuardConfigManager(config_path).load())


def test_reload_notifies_callbacks(tmp_path: Path) -> None:
    config_path = tmp_path / "routeguard.yml"
    config_path.write_text("disabled: false\n", encoding="utf-8")
    manager = GuardConfigManager(config_path)
    seen: List[bool] = []

    async def _on_reload(settings: GuardSettings) -> None:
        seen.append(settings.disabled)

    manager.register_callback(_on_reload)

    async def _run() -> GuardSettings:
        await manager.load()
        config_path.write_text("disabled: true\n", encoding="utf-8")
        await manager.reload()
        return await manager.get_settings()

    settings = asyncio.run(_run())
    assert seen == [True]
    assert settings.disabled


def test_load_settings_falls_back_to_defaults(tmp_path: Path) -> None:
    settings = load_settings(tmp_path / "missing.yml")
    assert settings == GuardSettings()


def test_build_storage_backends(tmp_path: Path) -> None:
    aaa, sign = build_storage(StorageSettings())
    assert isinstance(aaa, MemoryStorage)
    assert aaa is not sign

    aaa, sign = build_storage(StorageSettings(backend="file", path=tmp_path / "identity.json"))
    assert isinstance(aaa, FileStorage)
    assert aaa is sign

    aaa, sign = build_storage(
        StorageSettings(backend="file", path=tmp_path / "a.json", signature_path=tmp_path / "s.json")
    )
    assert isinstance(sign, FileStorage)
    assert sign.path == tmp_path / "s.json"
