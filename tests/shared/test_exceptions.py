"""Tests for shared/exceptions.py."""

from shared.exceptions import (
    PetCareError,
    ValidationError,
    ExternalServiceError,
)


class TestPetCareError:
    def test_petcare_error_message(self):
        """PetCareError should store message."""
        error = PetCareError("Test error")
        assert error.message == "Test error"
        assert str(error) == "Test error"

    def test_petcare_error_default_code(self):
        """PetCareError should default code to class name."""
        error = PetCareError("Test error")
        assert error.code == "PetCareError"

    def test_petcare_error_custom_code(self):
        """PetCareError should accept custom code."""
        error = PetCareError("Test error", code="CUSTOM_ERROR")
        assert error.code == "CUSTOM_ERROR"

    def test_petcare_error_default_details(self):
        """PetCareError should default details to empty dict."""
        error = PetCareError("Test error")
        assert error.details == {}

    def test_petcare_error_to_dict(self):
        """PetCareError should convert to dict."""
        error = PetCareError("Test error", code="TEST_ERROR", details={"key": "value"})
        result = error.to_dict()

        assert result["error"] == "TEST_ERROR"
        assert result["message"] == "Test error"
        assert result["details"]["key"] == "value"


class TestSubclasses:
    def test_validation_error_inherits_from_base(self):
        """ValidationError should be catchable as PetCareError."""
        error = ValidationError("boom")
        assert isinstance(error, PetCareError)
        assert error.code == "ValidationError"

    def test_external_service_error_records_service(self):
        """ExternalServiceError should expose the service in attributes and details."""
        error = ExternalServiceError("down", service="auth-api")
        assert error.service == "auth-api"
        assert error.details["service"] == "auth-api"
