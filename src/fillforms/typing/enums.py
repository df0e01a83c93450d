"""Project enums."""

from __future__ import annotations

from enum import StrEnum


class _EnumMixin(StrEnum):
    """Shared conversion helpers for user-facing enums."""

    @classmethod
    def from_str(cls, value: str) -> _EnumMixin:
        """Parse enum from string.

        Args:
            value: Raw string value.

        Raises:
            ValueError: If the value is not supported.

        Returns:
            _EnumMixin: Parsed enum value.
        """
        try:
            return cls(value)
        except ValueError as exc:
            supported = ", ".join(member.value for member in cls)
            message = f"Unsupported {cls.__name__} value '{value}'. Expected one of: {supported}"
            raise ValueError(message) from exc

    def to_str(self) -> str:
        """Return string representation.

        Returns:
            str: Enum string value.
        """
        return self.value


class FieldKind(_EnumMixin):
    """Interactive field kinds."""

    TEXT = "text"
    TEXTAREA = "textarea"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    SELECT = "select"
    DATE = "date"


class FieldSource(_EnumMixin):
    """Origin of the current field value."""

    PROFILE = "profile"
    MANUAL = "manual"
    SUGGESTED = "suggested"
    NONE = "none"


class IssueType(_EnumMixin):
    """Severity of a validation issue."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class IssueSource(_EnumMixin):
    """Validation pass that produced an issue."""

    STRUCTURED = "structured"
    VISION = "vision"


class DraftStatus(_EnumMixin):
    """Lifecycle status of a persisted draft."""

    DRAFT = "draft"
    COMPLETED = "completed"


class SaveState(_EnumMixin):
    """Autosave state of the active document session."""

    IDLE = "idle"
    SAVING = "saving"
    SAVED = "saved"
    LOCAL_ONLY = "local_only"
    ERROR = "error"


class OverlayShape(_EnumMixin):
    """Interaction shape of an overlay element."""

    SINGLE_LINE = "single_line"
    MULTI_LINE = "multi_line"
    TOGGLE = "toggle"
    CHOICE = "choice"


class CanonicalKey(_EnumMixin):
    """Closed vocabulary of semantic field identities."""

    FIRST_NAME = "firstName"
    MIDDLE_NAME = "middleName"
    LAST_NAME = "lastName"
    FULL_NAME = "fullName"
    DATE_OF_BIRTH = "dateOfBirth"
    PLACE_OF_BIRTH = "placeOfBirth"
    COUNTRY_OF_BIRTH = "countryOfBirth"
    GENDER = "gender"
    MARITAL_STATUS = "maritalStatus"
    NATIONALITY = "nationality"
    PASSPORT_NUMBER = "passportNumber"
    PASSPORT_ISSUE_DATE = "passportIssueDate"
    PASSPORT_EXPIRY = "passportExpiry"
    PASSPORT_ISSUING_COUNTRY = "passportIssuingCountry"
    EMAIL = "email"
    PHONE = "phone"
    ADDRESS = "address"
    CITY = "city"
    POSTAL_CODE = "postalCode"
    OCCUPATION = "occupation"
    EMPLOYER_NAME = "employerName"
    TRAVEL_PURPOSE = "travelPurpose"
    ARRIVAL_DATE = "arrivalDate"
    DEPARTURE_DATE = "departureDate"
