from __future__ import annotations

SAVE_FAILED_MESSAGE = "Error while saving the badge template."
DELETE_FAILED_MESSAGE = "Error while deleting the badge template."
DUPLICATE_FAILED_MESSAGE = "Error while duplicating the badge template."
EXPORT_FAILED_MESSAGE = "Error while exporting the badge template."
IMPORT_FAILED_MESSAGE = "Error while importing the badge template. Verify that the file is valid."
SELECTION_REQUIRED_MESSAGE = "Select at least one participant."
GENERATION_UNAVAILABLE_MESSAGE = "Badge PDF generation will be available soon."
GENERATION_FAILED_MESSAGE = "Error while generating badges."
BADGES_UNAVAILABLE_MESSAGE = "Badges are only available for residential or hybrid events."


class ConsoleError(Exception):
    """Base class for every failure the badge console reports to an operator."""

    default_message = "Badge console error."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class DuplicateElementError(ConsoleError):
    default_message = "An element with this id already exists on this side."


class BadgeApiError(ConsoleError):
    def __init__(self, detail: str, *, status_code: int | None = None):
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code


class CapabilityUnavailableError(BadgeApiError):
    """The server answered 501: the capability is not built or is switched off."""


class EditorSaveError(ConsoleError):
    default_message = SAVE_FAILED_MESSAGE


class GalleryActionError(ConsoleError):
    pass


class TemplateImportError(GalleryActionError):
    default_message = IMPORT_FAILED_MESSAGE


class SelectionRequiredError(ConsoleError):
    default_message = SELECTION_REQUIRED_MESSAGE


class GenerationUnavailableError(ConsoleError):
    default_message = GENERATION_UNAVAILABLE_MESSAGE


class GenerationFailedError(ConsoleError):
    default_message = GENERATION_FAILED_MESSAGE


class BadgesUnavailableError(ConsoleError):
    default_message = BADGES_UNAVAILABLE_MESSAGE
