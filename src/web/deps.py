"""Dependency injection for FastAPI routes."""

from functools import lru_cache

import structlog
from fastapi import Depends, Header, HTTPException, status

from capture.extractor import EntityExtractor
from capture.materializer import RecordMaterializer
from capture.normalizer import TranscriptNormalizer
from capture.pipeline import CapturePipeline
from capture.reconciler import ReconciliationHandler
from capture.store import RecordStore
from contacts import ContactResolver, ContactStore, TagStore
from llm import create_cheap_provider, provider_configured
from settings import RapportConfig, load_config_model
from transcription import TranscriptionClient

logger = structlog.get_logger()


@lru_cache
def get_config() -> RapportConfig:
    """Load shared config (./config.yaml, ~/.rapport/config.yaml, ~/rapport/config.yaml)."""
    return load_config_model()


def get_owner_id(x_owner_id: str | None = Header(None)) -> str:
    """Owner identity, set by the upstream auth layer."""
    owner_id = (x_owner_id or "").strip()
    if not owner_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Owner-Id header",
        )
    return owner_id


# --- Stores ---


def get_record_store(config: RapportConfig = Depends(get_config)) -> RecordStore:
    return RecordStore(config.paths.db_path)


def get_contact_store(config: RapportConfig = Depends(get_config)) -> ContactStore:
    return ContactStore(config.paths.db_path)


def get_tag_store(config: RapportConfig = Depends(get_config)) -> TagStore:
    return TagStore(config.paths.db_path)


# --- AI services ---


def get_llm_provider(config: RapportConfig = Depends(get_config)):
    """Configured text-generation provider, or None to resolve lazily per call."""
    llm = config.llm
    if not provider_configured(llm.provider, llm.api_key):
        return None
    return create_cheap_provider(
        provider=llm.provider, api_key=llm.api_key, model=llm.model, base_url=llm.base_url
    )


def get_transcriber(config: RapportConfig = Depends(get_config)) -> TranscriptionClient:
    return TranscriptionClient.from_config(config)


def get_pipeline(
    config: RapportConfig = Depends(get_config),
    provider=Depends(get_llm_provider),
    transcriber: TranscriptionClient = Depends(get_transcriber),
    records: RecordStore = Depends(get_record_store),
    contacts: ContactStore = Depends(get_contact_store),
    tags: TagStore = Depends(get_tag_store),
) -> CapturePipeline:
    capture = config.capture
    return CapturePipeline(
        normalizer=TranscriptNormalizer(
            provider=provider,
            temperature=capture.normalize_temperature,
            max_tokens=config.llm.max_tokens,
        ),
        extractor=EntityExtractor(
            provider=provider,
            self_aliases=capture.self_aliases,
            uncategorized_tag=capture.uncategorized_tag,
            max_tags=capture.max_tags,
            people_temperature=capture.people_temperature,
            tags_temperature=capture.tags_temperature,
            summary_temperature=capture.summary_temperature,
            retry_attempts=config.retry.max_attempts,
            retry_min_wait=config.retry.min_wait,
            retry_max_wait=config.retry.llm_max_wait,
        ),
        materializer=RecordMaterializer(
            records,
            contacts,
            ContactResolver(contacts),
            uncategorized_tag=capture.uncategorized_tag,
        ),
        tag_store=tags,
        transcriber=transcriber,
        max_text_chars=capture.max_text_chars,
    )


def get_reconciler(
    config: RapportConfig = Depends(get_config),
    records: RecordStore = Depends(get_record_store),
    contacts: ContactStore = Depends(get_contact_store),
    tags: TagStore = Depends(get_tag_store),
) -> ReconciliationHandler:
    return ReconciliationHandler(
        records, contacts, tags, new_contact_tag=config.capture.new_contact_tag
    )
