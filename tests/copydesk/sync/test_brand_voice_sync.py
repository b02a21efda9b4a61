"""Tests for sync/brand_voice.py — the project-embedded brand voice."""

import pytest

from copydesk.errors import NotFoundError, ValidationError
from copydesk.storage.local import PROJECTS_KEY
from copydesk.sync.brand_voice import BrandVoiceSync


class TestSave:
    async def test_save_embeds_in_project(self, brand_voice: BrandVoiceSync, local, acme):
        voice = await brand_voice.save(
            acme.id,
            {"brand_name": "Acme", "tone": " Warm ", "forbidden_words": ["cheap", " "]},
        )
        assert voice.tone == "Warm"
        assert voice.forbidden_words == ["cheap"]
        assert voice.saved_at
        [record] = local.read_list(PROJECTS_KEY)
        assert record["brand_voice"]["brand_name"] == "Acme"

    async def test_save_is_upsert(self, brand_voice: BrandVoiceSync, acme):
        await brand_voice.save(acme.id, {"brand_name": "Acme", "mission": "Help"})
        voice = await brand_voice.save(acme.id, {"tone": "Bold"})
        assert voice.brand_name == "Acme"
        assert voice.mission == "Help"
        assert voice.tone == "Bold"

    async def test_first_save_needs_name(self, brand_voice: BrandVoiceSync, acme):
        with pytest.raises(ValidationError, match="Brand name"):
            await brand_voice.save(acme.id, {"tone": "Bold"})

    async def test_bad_list(self, brand_voice: BrandVoiceSync, acme):
        with pytest.raises(ValidationError):
            await brand_voice.save(acme.id, {"brand_name": "Acme", "values": "honesty"})

    async def test_unknown_project(self, brand_voice: BrandVoiceSync):
        with pytest.raises(NotFoundError):
            await brand_voice.save("missing", {"brand_name": "Acme"})

    async def test_remote_addressed_by_project(self, brand_voice: BrandVoiceSync, remote, acme):
        await brand_voice.save(acme.id, {"brand_name": "Acme"})
        assert remote.tables["brand-voices"][acme.id]["brand_name"] == "Acme"

    async def test_offline_save(self, brand_voice: BrandVoiceSync, remote, acme):
        remote.online = False
        await brand_voice.save(acme.id, {"brand_name": "Acme"})
        assert (await brand_voice.get(acme.id)).brand_name == "Acme"


class TestReadAndRemove:
    async def test_get_none_when_unset(self, brand_voice: BrandVoiceSync, acme):
        assert await brand_voice.get(acme.id) is None
        assert await brand_voice.list(acme.id) == []

    async def test_remote_copy_mirrored(self, brand_voice: BrandVoiceSync, remote, acme):
        remote.tables["brand-voices"][acme.id] = {"project_id": acme.id, "brand_name": "Remote"}
        assert (await brand_voice.get(acme.id)).brand_name == "Remote"
        assert brand_voice.cached(acme.id).brand_name == "Remote"

    async def test_update_requires_existing(self, brand_voice: BrandVoiceSync, acme):
        with pytest.raises(NotFoundError):
            await brand_voice.update(acme.id, acme.id, {"tone": "Bold"})

    async def test_remove(self, brand_voice: BrandVoiceSync, remote, acme):
        await brand_voice.save(acme.id, {"brand_name": "Acme"})
        assert await brand_voice.remove(acme.id) is True
        assert brand_voice.cached(acme.id) is None
        assert acme.id not in remote.tables["brand-voices"]
