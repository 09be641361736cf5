import pytest

from desuru.core.exceptions import ValidationError
from desuru.core.validator import ParameterValidator


def validate(**overrides):
    values = dict(app_name="my-app", domain="example.com", port=3000)
    values.update(overrides)
    validator = ParameterValidator()
    return validator, validator.validate(**values)


class TestAppName:

    @pytest.mark.parametrize("name", ["my-app_1", "ab", "App2", "a" * 63])
    def test_accepts_valid_names(self, name):
        _, params = validate(app_name=name)
        assert params.app_name == name

    @pytest.mark.parametrize("name", ["a", "", "-app", "app-", "my app", "app.name", "a" * 64])
    def test_rejects_invalid_names(self, name):
        with pytest.raises(ValidationError):
            validate(app_name=name)


class TestPort:

    def test_rejects_out_of_range_port(self):
        with pytest.raises(ValidationError):
            validate(port=70000)

    def test_rejects_zero_and_text(self):
        with pytest.raises(ValidationError):
            validate(port=0)
        with pytest.raises(ValidationError):
            validate(port="http")

    def test_port_80_has_no_reserved_range_warning(self):
        validator, params = validate(port=80)
        assert params.port == 80
        assert validator.warnings == []

    def test_reserved_port_is_accepted_with_warning(self):
        validator, params = validate(port="22")
        assert params.port == 22
        assert any("reserved range" in warning for warning in validator.warnings)

    def test_port_string_is_normalized_to_int(self):
        _, params = validate(port="8080")
        assert params.port == 8080


class TestMemoryAndInstances:

    @pytest.mark.parametrize("memory", ["2G", "500M", "2048K", "1024"])
    def test_accepts_memory_limits(self, memory):
        _, params = validate(memory=memory)
        assert params.memory == memory

    @pytest.mark.parametrize("memory", ["2GB", "M", "1.5G", ""])
    def test_rejects_memory_limits(self, memory):
        with pytest.raises(ValidationError):
            validate(memory=memory)

    def test_numeric_memory_is_normalized_to_text(self):
        _, params = validate(memory=512)
        assert params.memory == "512"

    def test_instances_accepts_number_and_max(self):
        assert validate(instances="max")[1].instances == "max"
        assert validate(instances=4)[1].instances == "4"

    def test_instances_rejects_words(self):
        with pytest.raises(ValidationError):
            validate(instances="many")


class TestDomain:

    def test_localhost_is_accepted(self):
        _, params = validate(domain="localhost")
        assert params.domain == "localhost"

    def test_rejects_invalid_characters(self):
        with pytest.raises(ValidationError):
            validate(domain="bad_domain!")

    def test_missing_tld_only_warns(self):
        validator, params = validate(domain="intranet")
        assert params.domain == "intranet"
        assert any("TLD" in warning for warning in validator.warnings)


class TestSSL:

    def test_ssl_without_email_fails(self):
        with pytest.raises(ValidationError) as exc_info:
            validate(ssl=True)
        assert exc_info.value.hints

    def test_ssl_with_invalid_email_fails(self):
        with pytest.raises(ValidationError):
            validate(ssl=True, email="not-an-email")

    def test_ssl_on_localhost_is_disabled_with_warning(self):
        validator, params = validate(ssl=True, email="admin@example.com", domain="localhost")
        assert params.ssl is False
        assert any("localhost" in warning for warning in validator.warnings)

    def test_ssl_with_email_is_kept(self):
        _, params = validate(ssl=True, email="admin@example.com")
        assert params.ssl is True
        assert params.email == "admin@example.com"

    def test_non_text_email_is_rejected(self):
        with pytest.raises(ValidationError):
            validate(ssl=True, email=5)
