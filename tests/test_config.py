from vitality.catalog import catalog_from_settings
from vitality.config import EngineConfig, Settings
from vitality.models import Level


def test_defaults_without_file(tmp_path):
    config = EngineConfig.from_yaml(str(tmp_path / "missing.yaml"))

    assert config == EngineConfig()
    assert config.exercise_budget[Level.ADVANCED] == 6


def test_yaml_overrides(tmp_path):
    path = tmp_path / "vitality.yaml"
    path.write_text(
        "engine:\n"
        "  exercise_budget: {beginner: 3, intermediate: 4, advanced: 5}\n"
        "  default_variations: 2\n"
        "analysis:\n"
        "  substitution_threshold: 50\n"
        "storage:\n"
        "  backend: file\n"
        "  path: /tmp/vitality-test.json\n"
    )

    settings = Settings.load(str(path))

    assert settings.engine.exercise_budget[Level.BEGINNER] == 3
    assert settings.engine.default_variations == 2
    assert settings.engine.substitution_threshold == 50
    assert settings.engine.recent_window == 14


def test_environment_wins(tmp_path, monkeypatch):
    path = tmp_path / "vitality.yaml"
    path.write_text("storage:\n  backend: file\nlog_level: DEBUG\n")
    monkeypatch.setenv("VITALITY_STORE", "memory")
    monkeypatch.setenv("VITALITY_LOG_LEVEL", "WARNING")

    settings = Settings.load(str(path))

    assert settings.store_backend == "memory"
    assert settings.log_level == "WARNING"


def test_catalog_from_yaml_settings(tmp_path):
    path = tmp_path / "mini.yaml"
    path.write_text(
        "exercises:\n"
        "  - {id: a, name: A, category: strength, movement_pattern: push,"
        " primary_muscle_group: chest, difficulty: beginner}\n"
    )

    catalog = catalog_from_settings(Settings(catalog_path=str(path)))

    assert [e.id for e in catalog] == ["a"]
