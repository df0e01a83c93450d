"""User profile and autofill models."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from fillforms.typing.enums import CanonicalKey
from fillforms.typing.models.fields import FieldDefinition


class Address(BaseModel):
    """Postal address."""

    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)

    street: str = ""
    apartment: str | None = None
    city: str = ""
    state: str | None = None
    country: str = ""
    postal_code: str = ""

    def one_line(self) -> str:
        """Return address as a single comma separated line."""
        parts = [self.street, self.apartment, self.city, self.state, self.postal_code, self.country]
        return ", ".join(part for part in parts if part)


class PersonalInfo(BaseModel):
    """Identity section of a profile."""

    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)

    first_name: str = ""
    middle_name: str | None = None
    last_name: str = ""
    date_of_birth: str = ""
    place_of_birth: str = ""
    country_of_birth: str = ""
    gender: str = ""
    marital_status: str = ""
    nationality: str = ""
    email: str = ""
    phone: str = ""
    current_address: Address | None = None


class PassportInfo(BaseModel):
    """Passport section of a profile."""

    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)

    passport_number: str = ""
    issuing_country: str = ""
    issue_date: str = ""
    expiry_date: str = ""
    is_active: bool = True


class EmploymentInfo(BaseModel):
    """Employment record."""

    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)

    employer_name: str = ""
    job_title: str = ""
    is_current: bool = False


class EducationInfo(BaseModel):
    """Education record."""

    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)

    institution_name: str = ""
    degree: str = ""


class FamilyMember(BaseModel):
    """Family record."""

    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)

    relationship: str = ""
    first_name: str = ""
    last_name: str = ""
    date_of_birth: str = ""


class ProfileRecord(BaseModel):
    """Structured record returned by the profile store."""

    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)

    personal: PersonalInfo = Field(
        default_factory=PersonalInfo,
        validation_alias=AliasChoices("profile", "personal"),
    )
    passports: list[PassportInfo] = Field(default_factory=list)
    employment: list[EmploymentInfo] = Field(default_factory=list)
    education: list[EducationInfo] = Field(default_factory=list)
    family: list[FamilyMember] = Field(default_factory=list)
    travel_purpose: str = ""

    def projection(self) -> dict[CanonicalKey, str]:
        """Flatten the record into canonical key values.

        Returns:
            dict[CanonicalKey, str]: Non-empty values keyed by canonical key.
        """
        personal = self.personal
        passport = next((item for item in self.passports if item.is_active), None)
        if passport is None and self.passports:
            passport = self.passports[0]
        job = next((item for item in self.employment if item.is_current), None)

        full_name = " ".join(
            part for part in (personal.first_name, personal.middle_name, personal.last_name) if part
        )
        address = personal.current_address
        values: dict[CanonicalKey, str | None] = {
            CanonicalKey.FIRST_NAME: personal.first_name,
            CanonicalKey.MIDDLE_NAME: personal.middle_name,
            CanonicalKey.LAST_NAME: personal.last_name,
            CanonicalKey.FULL_NAME: full_name,
            CanonicalKey.DATE_OF_BIRTH: personal.date_of_birth,
            CanonicalKey.PLACE_OF_BIRTH: personal.place_of_birth,
            CanonicalKey.COUNTRY_OF_BIRTH: personal.country_of_birth,
            CanonicalKey.GENDER: personal.gender,
            CanonicalKey.MARITAL_STATUS: personal.marital_status,
            CanonicalKey.NATIONALITY: personal.nationality,
            CanonicalKey.EMAIL: personal.email,
            CanonicalKey.PHONE: personal.phone,
            CanonicalKey.ADDRESS: address.one_line() if address else None,
            CanonicalKey.CITY: address.city if address else None,
            CanonicalKey.POSTAL_CODE: address.postal_code if address else None,
            CanonicalKey.PASSPORT_NUMBER: passport.passport_number if passport else None,
            CanonicalKey.PASSPORT_ISSUE_DATE: passport.issue_date if passport else None,
            CanonicalKey.PASSPORT_EXPIRY: passport.expiry_date if passport else None,
            CanonicalKey.PASSPORT_ISSUING_COUNTRY: passport.issuing_country if passport else None,
            CanonicalKey.OCCUPATION: job.job_title if job else None,
            CanonicalKey.EMPLOYER_NAME: job.employer_name if job else None,
            CanonicalKey.TRAVEL_PURPOSE: self.travel_purpose,
        }
        return {key: value.strip() for key, value in values.items() if value and value.strip()}


class DestinationContext(BaseModel):
    """Destination the document is being filled for."""

    model_config = ConfigDict(extra="forbid")

    country: str = ""
    visa_type: str = ""


class AutofillResult(BaseModel):
    """Outcome of one autofill pass."""

    model_config = ConfigDict(extra="forbid")

    fields: list[FieldDefinition]
    changed_names: list[str] = Field(default_factory=list)

    @property
    def changed_count(self) -> int:
        """Return number of fields written by the pass."""
        return len(self.changed_names)
