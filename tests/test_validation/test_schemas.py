"""
Comprehensive Unit Tests for Endpoint Schemas
============================================
Schema table integrity and the validate_request algorithm.

Test Coverage:
- Table integrity (keys, immutability, field rules)
- Whitelist enforcement (extra fields)
- Required fields (absent and null)
- Field validators
- Unknown endpoint keys
"""

import pytest

from loyalty_api.validation.schemas import (
    ENDPOINT_SCHEMAS,
    FieldRule,
    ValidationResult,
    build_schema,
    optional,
    required,
    validate_request,
)

AUTH_KEYS = ("POST /auth/tokens", "POST /auth/resets", "POST /auth/resets/{reset_token}")


# ============================================================================
# TABLE INTEGRITY
# ============================================================================


class TestSchemaTable:
    """Test the declared schema table."""

    def test_auth_endpoints_declared(self):
        for key in AUTH_KEYS:
            assert key in ENDPOINT_SCHEMAS

    def test_keys_are_method_and_path(self):
        for key in ENDPOINT_SCHEMAS:
            method, path = key.split(" ")
            assert method in ("GET", "POST", "PATCH", "PUT", "DELETE")
            assert path.startswith("/")

    def test_field_names_unique_per_schema(self):
        for key, schema in ENDPOINT_SCHEMAS.items():
            names = [rule.name for rule in schema]
            assert len(names) == len(set(names)), key

    def test_table_is_read_only(self):
        with pytest.raises(TypeError):
            ENDPOINT_SCHEMAS["POST /auth/tokens"] = ()

    def test_field_rule_rejects_unknown_type_name(self):
        with pytest.raises(TypeError):
            FieldRule("x", "integer")

    def test_field_rule_rejects_non_callable(self):
        with pytest.raises(TypeError):
            FieldRule("x", 42)

    def test_build_schema_rejects_duplicates(self):
        with pytest.raises(ValueError, match="Duplicate"):
            build_schema(required("a", "string"), optional("a", "number"))


# ============================================================================
# VALIDATION ALGORITHM
# ============================================================================


class TestValidateRequest:
    """Test validate_request against the login schema."""

    def setup_method(self):
        self.key = "POST /auth/tokens"
        self.valid_body = {"utorid": "abcd1234", "password": "anything"}

    def test_valid_payload(self):
        result = validate_request(self.key, self.valid_body)

        assert result == ValidationResult(valid=True)
        assert bool(result) is True

    def test_extra_field_named(self):
        result = validate_request(self.key, {**self.valid_body, "isAdmin": True})

        assert result.valid is False
        assert result.error == "Invalid fields in request: isAdmin"
        assert result.fields == ("isAdmin",)

    def test_all_extra_fields_listed(self):
        result = validate_request(self.key, {**self.valid_body, "a": 1, "b": 2})

        assert result.error == "Invalid fields in request: a, b"
        assert result.fields == ("a", "b")

    def test_extra_fields_reported_before_missing(self):
        result = validate_request(self.key, {"utorid": "abcd1234", "extra": 1})
        assert result.fields == ("extra",)

    def test_missing_required_field_named(self):
        result = validate_request(self.key, {"utorid": "abcd1234"})

        assert result.valid is False
        assert result.error == "Missing required field: password"
        assert result.fields == ("password",)

    def test_null_required_field_is_missing(self):
        result = validate_request(self.key, {"utorid": "abcd1234", "password": None})
        assert result.error == "Missing required field: password"

    def test_invalid_value_named(self):
        result = validate_request(self.key, {"utorid": "ab", "password": "x"})

        assert result.valid is False
        assert result.error == "Invalid value for field: utorid"

    def test_primitive_type_mismatch(self):
        result = validate_request(self.key, {"utorid": "abcd1234", "password": 123})
        assert result.error == "Invalid value for field: password"

    def test_non_object_body(self):
        result = validate_request(self.key, ["utorid"])

        assert result.valid is False
        assert result.error == "Request body must be a JSON object"

    def test_unknown_endpoint_passes(self):
        assert validate_request("DELETE /nothing", {"anything": 1}).valid is True

    def test_custom_schema_table(self):
        schemas = {"POST /things": build_schema(required("count", "number"))}

        assert validate_request("POST /things", {"count": 3}, schemas).valid is True
        assert validate_request("POST /things", {}, schemas).valid is False


class TestOptionalFields:
    """Optional and nullable fields."""

    def test_optional_null_is_absent(self):
        result = validate_request(
            "POST /users",
            {
                "utorid": "abcd1234",
                "name": "Jane",
                "email": "jane@mail.utoronto.ca",
                "birthday": None,
            },
        )
        assert result.valid is True

    def test_optional_invalid_rejected(self):
        result = validate_request(
            "POST /users",
            {
                "utorid": "abcd1234",
                "name": "Jane",
                "email": "jane@mail.utoronto.ca",
                "birthday": "tomorrow",
            },
        )
        assert result.error == "Invalid value for field: birthday"

    def test_nullable_capacity(self):
        body = {"capacity": None, "points": 5}
        assert validate_request("PATCH /events/{event_id}", body).valid is True

    def test_query_string_pagination(self):
        assert validate_request("GET /users", {"page": "2", "limit": "10"}).valid is True
        assert validate_request("GET /users", {"page": "0"}).valid is False

    def test_reset_consumption_requires_strong_password(self):
        key = "POST /auth/resets/{reset_token}"
        assert validate_request(key, {"utorid": "abcd1234", "password": "Abcd123!"}).valid
        assert not validate_request(key, {"utorid": "abcd1234", "password": "abcd1234"}).valid

    def test_user_update_types(self):
        key = "PATCH /users/{user_id}"
        assert validate_request(key, {"verified": True, "role": "cashier"}).valid
        assert not validate_request(key, {"verified": "true"}).valid
        assert not validate_request(key, {"role": "owner"}).valid
