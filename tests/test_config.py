"""
Tests for the model catalogue and chunking configuration.
"""

import pytest

from pocketllm import config


@pytest.fixture(autouse=True)
def restore_catalog():
    yield
    config.load_model_catalog()


class TestModelCatalog:

    def test_bundled_catalog(self):
        models = config.load_model_catalog()

        assert [m.id for m in models] == ["llama3.2:1b", "llama3.2:3b"]
        assert config.default_model().name == "Core 1B"
        assert config.get_model_by_name("Core 3B").id == "llama3.2:3b"
        assert config.get_model_by_name("gpt-9") is None

    def test_custom_catalog(self, tmp_path):
        path = tmp_path / "models.yaml"
        path.write_text(
            "default: big\n"
            "models:\n"
            "  - id: small\n"
            "    tags: [chat]\n"
            "  - id: big\n"
            "    name: Big One\n"
            "    size_gb: 4\n",
            encoding="utf-8",
        )

        models = config.load_model_catalog(path)

        assert models[0] == config.ModelDescriptor("small", "small", None, ("chat",))
        assert models[0].size_label == "Size unknown"
        assert config.default_model().size_label == "4.0 GB"

    def test_missing_catalog_uses_builtin(self, tmp_path):
        models = config.load_model_catalog(tmp_path / "absent.yaml")
        assert [m.name for m in models] == ["Core 1B", "Core 3B"]

    def test_malformed_catalog_uses_builtin(self, tmp_path):
        path = tmp_path / "models.yaml"
        path.write_text("models: [ {id: ", encoding="utf-8")

        assert [m.id for m in config.load_model_catalog(path)] == ["llama3.2:1b", "llama3.2:3b"]


class TestChunkingConfig:

    def test_bundled_values(self):
        settings = config.load_chunking_config()
        assert settings == {
            'max_chunk_size': 2000,
            'max_summary_input_size': 8000,
            'sentence_language': 'english',
        }

    def test_partial_file_falls_back(self, tmp_path):
        path = tmp_path / "chunking.yaml"
        path.write_text("chunking:\n  max_chunk_size: 500\n  unknown_key: 1\n", encoding="utf-8")

        settings = config.load_chunking_config(path)

        assert settings['max_chunk_size'] == 500
        assert settings['max_summary_input_size'] == config.MAX_SUMMARY_INPUT_SIZE
        assert 'unknown_key' not in settings
