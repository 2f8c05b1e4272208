from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from catalog_bootstrap.domain.spec import Spec, SpecLanguage
from catalog_bootstrap.domain.status import Status
from catalog_bootstrap.ui import cli as cli_module

if TYPE_CHECKING:
    from pathlib import Path


def test_bootstrap_command_builds_run_config(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    spec_path = tmp_path / "spec.json"
    spec_path.write_text(json.dumps({"languages": [{"code": "en", "name": "English"}]}))
    captured: dict[str, object] = {}

    def fake_bootstrap(instance: str, spec: Spec, **kwargs: object) -> Status:
        captured.update(instance=instance, spec=spec, **kwargs)
        return Status()

    monkeypatch.setattr(cli_module, "bootstrap_instance", fake_bootstrap)

    cli_module.main(
        [
            "--log-level",
            "verbose",
            "bootstrap",
            "acme",
            str(spec_path),
            "--max-workers",
            "3",
            "--item-topics",
            "replace",
        ]
    )

    assert captured["instance"] == "acme"
    spec = captured["spec"]
    assert isinstance(spec, Spec)
    assert spec.languages == (SpecLanguage(code="en", name="English"),)
    config = captured["config"]
    assert config.max_workers == 3  # type: ignore[attr-defined]
    assert config.item_topics == "replace"  # type: ignore[attr-defined]
    assert config.log_level == "verbose"  # type: ignore[attr-defined]
    assert config.multilingual is False  # type: ignore[attr-defined]


def test_export_command_writes_the_spec(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    output = tmp_path / "out.json"
    captured: dict[str, object] = {}

    def fake_create_spec(instance: str, options: object, **kwargs: object) -> Spec:
        captured.update(instance=instance, options=options)
        return Spec(languages=(SpecLanguage(code="en", name="English", isDefault=True),))

    monkeypatch.setattr(cli_module, "create_spec", fake_create_spec)

    cli_module.main(["export", "acme", str(output), "--skip", "grids", "--skip", "shapes"])

    options = captured["options"]
    assert options.grids is False  # type: ignore[attr-defined]
    assert options.shapes is False  # type: ignore[attr-defined]
    assert options.languages is True  # type: ignore[attr-defined]
    assert options.items is True  # type: ignore[attr-defined]
    assert options.items_base_path == "/"  # type: ignore[attr-defined]
    written = json.loads(output.read_text(encoding="utf-8"))
    assert written == {"languages": [{"code": "en", "name": "English", "isDefault": True}]}


def test_export_command_passes_the_items_options(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    captured: dict[str, object] = {}

    def fake_create_spec(instance: str, options: object, **kwargs: object) -> Spec:
        captured["options"] = options
        return Spec()

    monkeypatch.setattr(cli_module, "create_spec", fake_create_spec)

    cli_module.main(["export", "acme", str(tmp_path / "out.json"), "--items-base-path", "/shop"])
    options = captured["options"]
    assert options.items is True  # type: ignore[attr-defined]
    assert options.items_base_path == "/shop"  # type: ignore[attr-defined]

    cli_module.main(["export", "acme", str(tmp_path / "out.json"), "--skip", "items"])
    assert captured["options"].items is False  # type: ignore[attr-defined]


def test_invalid_max_workers_exits_with_usage_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli_module, "bootstrap_instance", lambda *_, **__: Status())

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["bootstrap", "acme", "spec.json", "--max-workers", "0"])

    assert excinfo.value.code == 2


def test_run_failure_exits_with_error(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    spec_path = tmp_path / "spec.json"
    spec_path.write_text("{}")

    def failing_bootstrap(*_: object, **__: object) -> Status:
        raise RuntimeError("boom")

    monkeypatch.setattr(cli_module, "bootstrap_instance", failing_bootstrap)

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["bootstrap", "acme", str(spec_path)])

    assert excinfo.value.code == 1
