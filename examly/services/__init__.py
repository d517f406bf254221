"""Business-logic services used by the pipeline and the HTTP layer."""

from examly.services.chapter_sequencer import ChapterSequencer
from examly.services.document_service import (
    DocumentService,
    UploadedFile,
    UploadRejection,
    UploadResult,
)
from examly.services.material_name_detector import MaterialNameDetector
from examly.services.material_service import MaterialListing, MaterialService, ShareOutcome
from examly.services.material_synthesizer import MaterialSynthesizer
from examly.services.notification_service import NotificationService, NotificationView
from examly.services.text_extractor import SUPPORTED_EXTENSIONS, TextExtractor
from examly.services.user_service import UserService

__all__ = [
    "SUPPORTED_EXTENSIONS",
    "ChapterSequencer",
    "DocumentService",
    "MaterialListing",
    "MaterialNameDetector",
    "MaterialService",
    "MaterialSynthesizer",
    "NotificationService",
    "NotificationView",
    "ShareOutcome",
    "TextExtractor",
    "UploadRejection",
    "UploadResult",
    "UploadedFile",
    "UserService",
]
