"""Active document session: the single owner of the live field list."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import uuid4

from fillforms.autofill import autofill
from fillforms.drafts.scheduler import AutoValidationTimer, SupersessionGuard
from fillforms.drafts.session import DraftPersistence
from fillforms.exceptions import BackendError
from fillforms.extractor import extract_document
from fillforms.logging import bind_document_context, get_logger
from fillforms.processing.grouping import completion_percentage
from fillforms.processing.labels import humanize_field_name
from fillforms.synthesis import synthesize_document
from fillforms.typing.enums import FieldKind, FieldSource
from fillforms.typing.models import (
    AutofillResult,
    DestinationContext,
    FieldAppearance,
    FieldDefinition,
)
from fillforms.validation.validator import Validator

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import date

    from fillforms.extractor import IntelligenceCache
    from fillforms.settings import Settings
    from fillforms.typing.models import ExtractedDocument, ValidationReport, WidgetAnnotation
    from fillforms.typing.protocol import DocumentIntelligenceClient, DraftStore, ProfileStore

logger = get_logger(__name__)

_AUTOFILL = "autofill"
_VALIDATION = "validation"


class DocumentSession:
    """Editing session over one uploaded document.

    Every field write goes through `update_field` or `apply_values`; readers only ever
    receive copies.
    """

    def __init__(
        self,
        document: ExtractedDocument,
        pdf_bytes: bytes,
        *,
        file_name: str,
        settings: Settings,
        context: DestinationContext | None = None,
        draft_store: DraftStore | None = None,
        profile_store: ProfileStore | None = None,
        validator: Validator | None = None,
    ) -> None:
        """Initialize session.

        Args:
            document (ExtractedDocument): Extraction result.
            pdf_bytes (bytes): Original document bytes.
            file_name (str): Uploaded file name.
            settings (Settings): Runtime settings.
            context (DestinationContext | None): Destination context.
            draft_store (DraftStore | None): Draft store; None disables persistence.
            profile_store (ProfileStore | None): Profile store; None disables autofill.
            validator (Validator | None): Validation orchestrator.
        """
        self.session_id = uuid4().hex
        self._document = document
        self._pdf_bytes = pdf_bytes
        self._file_name = file_name
        self._context = context or DestinationContext()
        self._profile_store = profile_store
        self._validator = validator or Validator()
        self._guard = SupersessionGuard()
        self._fields: dict[str, FieldDefinition] = {field.name: field for field in document.fields}
        self._edit_mode = False
        self._last_report: ValidationReport | None = None
        self._auto_vision = False

        self.drafts: DraftPersistence | None = None
        if draft_store is not None:
            self.drafts = DraftPersistence(draft_store, source=self, settings=settings, guard=self._guard)
        self._timer = AutoValidationTimer(
            settings.auto_validation_interval_seconds,
            self._auto_validate,
            is_enabled=lambda: self._edit_mode,
        )
        bind_document_context(session_id=self.session_id)

    @classmethod
    async def open(
        cls,
        pdf_bytes: bytes,
        *,
        file_name: str,
        settings: Settings,
        context: DestinationContext | None = None,
        intelligence_client: DocumentIntelligenceClient | None = None,
        cache: IntelligenceCache | None = None,
        draft_store: DraftStore | None = None,
        profile_store: ProfileStore | None = None,
        validator: Validator | None = None,
    ) -> DocumentSession:
        """Extract an uploaded document and open a session over it.

        Raises:
            UnprocessableDocumentError: If the document has no interactive fields.

        Returns:
            DocumentSession: New session.
        """
        document = await extract_document(
            pdf_bytes,
            settings=settings,
            intelligence_client=intelligence_client,
            cache=cache,
            visa_type=context.visa_type if context else None,
        )
        session = cls(
            document,
            pdf_bytes,
            file_name=file_name,
            settings=settings,
            context=context,
            draft_store=draft_store,
            profile_store=profile_store,
            validator=validator,
        )
        logger.info("Document session opened", extra={"file_name": file_name, "fields": len(document.fields)})
        return session

    @property
    def file_name(self) -> str:
        """Return the uploaded file name."""
        return self._file_name

    @property
    def pdf_bytes(self) -> bytes:
        """Return the original document bytes."""
        return self._pdf_bytes

    @property
    def context(self) -> DestinationContext:
        """Return the destination context."""
        return self._context

    @property
    def document(self) -> ExtractedDocument:
        """Return the extraction result."""
        return self._document

    @property
    def page_count(self) -> int:
        """Return the number of pages."""
        return self._document.page_count

    @property
    def annotations(self) -> list[WidgetAnnotation]:
        """Return widget annotations of the document."""
        return list(self._document.annotations)

    @property
    def fields(self) -> list[FieldDefinition]:
        """Return copies of the live fields."""
        return self.snapshot_fields()

    @property
    def edit_mode(self) -> bool:
        """Return whether the user is editing."""
        return self._edit_mode

    @property
    def last_report(self) -> ValidationReport | None:
        """Return the latest applied validation report."""
        return self._last_report

    @property
    def completion_percentage(self) -> int:
        """Return the share of filled field groups."""
        return completion_percentage(self._fields.values())

    def snapshot_fields(self) -> list[FieldDefinition]:
        """Return copies of the live fields in document order."""
        return [field.model_copy() for field in self._fields.values()]

    def field(self, name: str) -> FieldDefinition | None:
        """Return a copy of one field, or None when unknown."""
        current = self._fields.get(name)
        return current.model_copy() if current else None

    def set_context(self, context: DestinationContext) -> None:
        """Change the destination context."""
        self._context = context

    def _write(self, name: str, value: str, source: FieldSource) -> bool:
        current = self._fields.get(name)
        if current is None:
            raise KeyError(name)
        if current.value == value:
            return False
        self._fields[name] = current.model_copy(update={"value": value, "source": source})
        return True

    def update_field(
        self,
        name: str,
        value: str,
        *,
        source: FieldSource = FieldSource.MANUAL,
    ) -> FieldDefinition:
        """Write one field value.

        Args:
            name (str): Field name.
            value (str): New value.
            source (FieldSource): Origin of the value.

        Raises:
            KeyError: If the field is unknown.

        Returns:
            FieldDefinition: Copy of the updated field.
        """
        if self._write(name, value, source) and self.drafts is not None:
            self.drafts.schedule_autosave()
        return self._fields[name].model_copy()

    def apply_values(
        self,
        values: Mapping[str, str],
        *,
        source: FieldSource = FieldSource.MANUAL,
    ) -> list[str]:
        """Write several field values as one edit.

        Args:
            values (Mapping[str, str]): Values keyed by field name.
            source (FieldSource): Origin of the values.

        Raises:
            KeyError: If a field is unknown.

        Returns:
            list[str]: Names of the fields that changed.
        """
        changed = [name for name, value in values.items() if self._write(name, value, source)]
        if changed and self.drafts is not None:
            self.drafts.schedule_autosave()
        return changed

    def ensure_field(self, annotation: WidgetAnnotation) -> FieldDefinition:
        """Return the field bound to a widget, synthesizing its definition when missing.

        Args:
            annotation (WidgetAnnotation): Widget geometry.

        Returns:
            FieldDefinition: Copy of the bound field.
        """
        current = self._fields.get(annotation.field_name)
        if current is not None:
            if annotation.kind == FieldKind.RADIO and annotation.export_value:
                if annotation.export_value not in current.options:
                    options = [*current.options, annotation.export_value]
                    current = current.model_copy(update={"options": options})
                    self._fields[annotation.field_name] = current
            return current.model_copy()

        created = FieldDefinition(
            name=annotation.field_name,
            kind=annotation.kind,
            label=humanize_field_name(annotation.field_name),
            options=[annotation.export_value] if annotation.export_value else [],
            appearance=FieldAppearance(on_token=annotation.on_token) if annotation.on_token else None,
            page=annotation.page,
        )
        self._fields[created.name] = created
        logger.info("Field definition synthesized", extra={"field": created.name, "kind": created.kind})
        return created.model_copy()

    def replace_fields(self, fields: list[FieldDefinition]) -> None:
        """Replace the whole live field list, e.g. after a version restore."""
        self._fields = {field.name: field.model_copy() for field in fields}

    def start_editing(self, *, include_vision: bool = False) -> None:
        """Enter edit mode and start periodic validation.

        Args:
            include_vision (bool): Include the vision pass in automatic runs.
        """
        self._edit_mode = True
        self._auto_vision = include_vision
        self._timer.start()

    def stop_editing(self) -> None:
        """Leave edit mode and stop periodic validation."""
        self._edit_mode = False
        self._timer.stop()

    async def autofill(self) -> AutofillResult:
        """Fill empty fields from the stored profile.

        A result superseded by a later autofill request is not applied.

        Returns:
            AutofillResult: Outcome; `changed_names` is empty when nothing was applied.
        """
        if self._profile_store is None:
            return AutofillResult(fields=self.snapshot_fields())

        token = self._guard.issue(_AUTOFILL)
        try:
            profile = await self._profile_store.fetch_profile()
        except BackendError as exc:
            logger.warning("Profile unavailable, autofill skipped", extra={"error": str(exc)})
            return AutofillResult(fields=self.snapshot_fields())
        try:
            server_values = await self._profile_store.fetch_autofill(self._context, self.snapshot_fields())
        except BackendError as exc:
            logger.warning("Server autofill unavailable", extra={"error": str(exc)})
            server_values = {}

        if not self._guard.is_current(_AUTOFILL, token):
            logger.info("Stale autofill discarded")
            return AutofillResult(fields=self.snapshot_fields())

        result = autofill(self.snapshot_fields(), profile, self._context, server_values=server_values)
        by_name = {field.name: field.value for field in result.fields}
        self.apply_values({name: by_name[name] for name in result.changed_names}, source=FieldSource.PROFILE)
        return result

    async def validate(
        self,
        *,
        include_vision: bool = False,
        today: date | None = None,
    ) -> ValidationReport | None:
        """Validate the current fields.

        Args:
            include_vision (bool): Run the vision pass as well.
            today (date | None): Reference date for the structured pass.

        Returns:
            ValidationReport | None: Report, or None when a later run superseded this one.
        """
        token = self._guard.issue(_VALIDATION)
        self._timer.reset()
        report = await self._validator.validate(
            self.snapshot_fields(),
            self._context.country,
            pdf_bytes=self._pdf_bytes,
            include_vision=include_vision,
            today=today,
        )
        if not self._guard.is_current(_VALIDATION, token):
            logger.info("Stale validation discarded")
            return None
        self._last_report = report
        logger.info(
            "Validation completed",
            extra={
                "score": report.structured.overall_score,
                "issues": len(report.structured.issues),
                "vision": report.vision.available if report.vision else None,
            },
        )
        return report

    async def _auto_validate(self) -> None:
        await self.validate(include_vision=self._auto_vision)

    async def download(self) -> bytes:
        """Synthesize the filled document and mark the draft completed.

        Returns:
            bytes: Filled document.
        """
        filled = synthesize_document(self._pdf_bytes, self._fields.values())
        if self.drafts is not None:
            await self.drafts.flush()
            await self.drafts.mark_completed(self._last_report, context="download")
        return filled

    async def close(self) -> None:
        """Stop timers, save pending edits and unbind log context."""
        self.stop_editing()
        if self.drafts is not None:
            await self.drafts.close()
        bind_document_context(session_id=None, form_id=None)
