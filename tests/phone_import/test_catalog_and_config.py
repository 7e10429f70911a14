"""Tests for the YAML catalog and configuration loading."""

import pytest

from src.prov.phone_import.adapters.yaml_catalog import YamlModelCatalog
from src.prov.phone_import.config import DomainPolicies, ImportConfig, load_domain_policies
from src.prov.phone_import.domain.entities import DomainPolicy


@pytest.fixture
def catalog_dir(tmp_path):
    vendor = tmp_path / "yealink"
    (vendor / "models").mkdir(parents=True)
    (vendor / "vendor.yaml").write_text("id: yealink\nname: Yealink\n")
    (vendor / "models" / "t46s.yaml").write_text(
        "id: T46S\nname: Yealink T46S\ntype: phone\nmax_account_lines: 16\nmin_number: 100\n"
    )
    (vendor / "models" / "exp50.yml").write_text("id: EXP50\nname: EXP50\ntype: expansion-module\n")
    (vendor / "models" / "broken.yaml").write_text("name: no id here\n")
    return tmp_path


class TestYamlModelCatalog:
    def test_from_directory(self, catalog_dir):
        catalog = YamlModelCatalog.from_directory(catalog_dir)

        model = catalog.get("t46s")
        assert model.vendor == "yealink"
        assert model.max_account_lines == 16
        assert model.min_number == 100
        assert model.max_number is None

    def test_list_excludes_expansion_modules(self, catalog_dir):
        catalog = YamlModelCatalog.from_directory(catalog_dir)
        assert [m.id for m in catalog.list_models()] == ["T46S"]

    @pytest.mark.parametrize(
        "vendor,model",
        [("yealink", "T46S"), ("YEALINK", "t46s"), ("Yealink", "Yealink T46S")],
    )
    def test_resolve(self, catalog_dir, vendor, model):
        catalog = YamlModelCatalog.from_directory(catalog_dir)
        assert catalog.resolve(vendor, model).id == "T46S"

    def test_resolve_unknown(self, catalog_dir):
        catalog = YamlModelCatalog.from_directory(catalog_dir)
        assert catalog.resolve("yealink", "EXP50") is None
        assert catalog.resolve("fanvil", "T46S") is None

    def test_missing_directory(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            YamlModelCatalog.from_directory(tmp_path / "nope")


class TestDomainPolicies:
    def test_load(self, tmp_path):
        path = tmp_path / "system.yaml"
        path.write_text(
            "domains:\n"
            "  - name: office.example.com\n"
            "    require_user: true\n"
            "  - name: lab.example.com\n"
        )

        policies = load_domain_policies(path)

        assert policies.effective_policy("office.example.com").require_user is True
        assert policies.effective_policy("lab.example.com").require_user is False

    def test_unknown_domain_falls_back_to_first(self):
        policies = DomainPolicies([DomainPolicy(name="office", require_user=True)])

        policy = policies.effective_policy("branch")

        assert policy.name == "branch"
        assert policy.require_user is True

    def test_missing_file_gives_defaults(self, tmp_path):
        policies = load_domain_policies(tmp_path / "missing.yaml")
        assert policies.effective_policy("any").require_user is False

    def test_non_mapping_raises(self, tmp_path):
        path = tmp_path / "system.yaml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(ValueError):
            load_domain_policies(path)


class TestImportConfig:
    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("MAX_UPLOAD_SIZE_MB", "2")
        monkeypatch.setenv("IMPORT_COMMIT_CONCURRENCY", "4")
        monkeypatch.setenv("CORS_ORIGINS", "http://a.example, http://b.example")

        config = ImportConfig()

        assert config.max_upload_size_bytes == 2 * 1024 * 1024
        assert config.commit_concurrency == 4
        assert config.cors_origins == ["http://a.example", "http://b.example"]
