"""Career coach service: analysis generation, chat, and key management."""

from __future__ import annotations

import logging
from typing import List, Optional, Union, cast

from .analysis_versioning import AnalysisVersioning
from .config import Settings, get_settings
from .constants import DEMO_ANALYSIS
from .credentials import CredentialHolder
from .prompt_utils import build_analysis_messages, build_chat_messages, coerce_analysis_payload
from .provider_client import ProviderClient
from .record_store import RecordStore
from .records import Analysis, ChatMessage, ChatThread, KeyStorage, ProfessionalProfile, StudentProfile, Table
from .stream_decoder import TextCallback

logger = logging.getLogger(__name__)

ProfileRecord = Union[StudentProfile, ProfessionalProfile]


class CareerCoach:
    """Coordinates the record store, versioning, provider, and credential holder for the UI."""

    def __init__(
        self,
        store: RecordStore,
        versioning: AnalysisVersioning,
        provider: ProviderClient,
        credentials: CredentialHolder,
        settings: Optional[Settings] = None,
    ) -> None:
        self.store = store
        self.versioning = versioning
        self.provider = provider
        self.credentials = credentials
        self.settings = settings or get_settings()

    async def generate_analysis(self, user_id: int, profile: ProfileRecord, *, demo: bool = False) -> Analysis:
        """Analyse ``profile`` and record the result as the user's latest analysis.

        Demo mode, or a missing key, uses the canned analysis without touching the network.
        """
        if demo or self.settings.demo_mode or not self.credentials.read():
            logger.info("Generating demo analysis for user_id=%s", user_id)
            content = coerce_analysis_payload(DEMO_ANALYSIS)
        else:
            reply = await self.provider.complete(build_analysis_messages(profile))
            content = coerce_analysis_payload(reply)
        return await self.versioning.record_analysis(user_id, content)

    async def start_thread(self, user_id: int, title: str, context_refs: Optional[List[str]] = None) -> ChatThread:
        return await self.store.create_thread(user_id, title, context_refs)

    async def chat(
        self,
        thread_id: int,
        message: str,
        on_text: Optional[TextCallback] = None,
    ) -> ChatMessage:
        """Stream a reply to ``message`` and persist both sides of the exchange.

        Nothing is persisted when the provider call fails, so the UI can retry.
        """
        thread = cast(ChatThread, await self.store.require(Table.CHAT_THREADS, thread_id))

        user = await self.store.get_user(thread.user_id)
        profile = await self.store.get_profile(thread.user_id, user.role) if user else None
        analysis = await self.versioning.get_latest(thread.user_id)
        history = await self.store.get_chat_messages(thread_id)

        messages = build_chat_messages(message, profile=profile, analysis=analysis, history=history)
        reply = await self.provider.complete(messages, stream=True, on_text=on_text)

        await self.store.append_message(thread_id, "user", message)
        return await self.store.append_message(thread_id, "assistant", reply)

    async def save_api_key(self, key: str, persistent: bool = False, *, passphrase: Optional[str] = None) -> KeyStorage:
        location = self.credentials.save(key, persistent, passphrase=passphrase)
        await self.store.save_settings(openai_key_stored=location)
        return location

    async def clear_api_key(self) -> None:
        self.credentials.clear()
        await self.store.save_settings(openai_key_stored="none")

    async def test_api_key(self, key: str) -> bool:
        return await self.provider.test_api_key(key)

    async def factory_reset(self) -> None:
        """Remove every record and forget the provider key."""
        await self.store.wipe()
        self.credentials.clear()
        logger.info("Factory reset complete")


__all__ = ["CareerCoach"]
