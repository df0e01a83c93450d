from __future__ import annotations

import asyncio
from datetime import date

from fillforms.drafts import InMemoryDraftStore
from fillforms.extractor import extract_fields
from fillforms.session import DocumentSession
from fillforms.settings import Settings
from fillforms.typing.enums import DraftStatus, SaveState
from fillforms.typing.models import DestinationContext, FieldDefinition, ProfileRecord

PROFILE = ProfileRecord.model_validate(
    {
        "profile": {
            "firstName": "Jane",
            "lastName": "Doe",
            "dateOfBirth": "1990-04-12",
            "nationality": "French",
            "email": "jane@example.com",
        },
        "passports": [{"passportNumber": "X1234567", "isActive": True}],
    },
)


class _ProfileStore:
    async def fetch_profile(self) -> ProfileRecord:
        return PROFILE

    async def fetch_autofill(
        self,
        context: DestinationContext,
        fields: list[FieldDefinition],
    ) -> dict[str, str]:
        return {}


def _open(pdf: bytes, store: InMemoryDraftStore) -> DocumentSession:
    return asyncio.run(
        DocumentSession.open(
            pdf,
            file_name="visa.pdf",
            settings=Settings(AUTOSAVE_DEBOUNCE_SECONDS=60),
            context=DestinationContext(country="singapore"),
            draft_store=store,
            profile_store=_ProfileStore(),
        ),
    )


def test_autofill_validate_and_download(visa_form_pdf: bytes) -> None:
    store = InMemoryDraftStore()
    session = _open(visa_form_pdf, store)

    async def scenario() -> bytes:
        await session.autofill()
        assert session.drafts is not None
        assert session.drafts.autosave_pending
        await session.drafts.flush()
        assert session.drafts.state == SaveState.SAVED
        report = await session.validate(today=date(2026, 10, 17))
        assert report is not None
        assert report.structured.total_groups == 7
        assert report.structured.filled_groups == 6
        filled = await session.download()
        await session.close()
        return filled

    filled = asyncio.run(scenario())

    values = {field.name: field.value for field in session.fields}
    assert [values[f"Surname_{index}"] for index in range(1, 4)] == ["D", "o", "e"]
    assert values["given_names"] == "Jane"
    assert values["dob_field"] == "12/04/1990"
    assert values["PassportNo"] == "X1234567"
    assert values["Text7"] == "jane@example.com"
    assert values["nationality"] == "Singaporean"

    reread = {field.name: field.value for field in extract_fields(filled).fields}
    assert reread["given_names"] == "Jane"
    assert reread["Text7"] == "jane@example.com"

    drafts = asyncio.run(store.list_drafts())
    assert len(drafts) == 1
    assert drafts[0].status == DraftStatus.COMPLETED
    assert drafts[0].has_pdf


def test_restore_earlier_version(visa_form_pdf: bytes) -> None:
    store = InMemoryDraftStore()
    session = _open(visa_form_pdf, store)

    async def scenario() -> None:
        assert session.drafts is not None
        session.update_field("given_names", "Jane")
        await session.drafts.flush()
        first_version = session.drafts.latest_version_id
        session.update_field("given_names", "Janet")
        await session.drafts.flush()
        assert len(session.drafts.versions) == 2

        await session.drafts.restore_version(first_version or "")

        assert len(session.drafts.versions) == 2
        await session.close()

    asyncio.run(scenario())

    restored = session.field("given_names")
    assert restored is not None
    assert restored.value == "Jane"
