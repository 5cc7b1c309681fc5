"""Application services for s2b-sourcing."""

from s2b_sourcing.services.assembler import RecordAssembler
from s2b_sourcing.services.category import CategoryMapper
from s2b_sourcing.services.certification import CertificationAuthority, CertificationResolver
from s2b_sourcing.services.enrichment import EnrichmentClient, OcrClient
from s2b_sourcing.services.export_service import ExportService

__all__ = [
    "CategoryMapper",
    "CertificationAuthority",
    "CertificationResolver",
    "EnrichmentClient",
    "ExportService",
    "OcrClient",
    "RecordAssembler",
]
