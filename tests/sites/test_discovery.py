"""Site discovery reconciliation."""

import uuid

import pytest
from sqlalchemy import select

from seodesk.common.result import ErrorKind
from seodesk.db.models import Group, Site, User
from seodesk.sites.discovery import SiteReconciler


async def stored_sites(session, user_id):
    result = await session.execute(select(Site).where(Site.user_id == user_id).order_by(Site.property_id))
    return list(result.scalars())


class TestDiscover:
    """Diffing remote properties against stored sites."""

    @pytest.mark.asyncio
    async def test_adds_unseen_properties(self, db_session, user, fake_gsc):
        fake_gsc.sites = ["sc-domain:a.com", "https://b.com/"]
        result = await SiteReconciler(db_session, fake_gsc).discover(user.id)

        assert result.ok
        assert result.value == 2
        sites = await stored_sites(db_session, user.id)
        assert {(s.property_id, s.domain) for s in sites} == {
            ("sc-domain:a.com", "a.com"),
            ("https://b.com/", "b.com"),
        }
        assert all(not s.is_favorite for s in sites)

    @pytest.mark.asyncio
    async def test_uses_refresh_token(self, db_session, user, fake_gsc):
        await SiteReconciler(db_session, fake_gsc).discover(user.id)
        assert fake_gsc.calls == [("list_sites", "refresh-token-1")]

    @pytest.mark.asyncio
    async def test_idempotent(self, db_session, user, fake_gsc):
        fake_gsc.sites = ["sc-domain:a.com", "sc-domain:b.com"]
        reconciler = SiteReconciler(db_session, fake_gsc)

        first = await reconciler.discover(user.id)
        second = await reconciler.discover(user.id)

        assert first.value == 2
        assert second.ok
        assert second.value == 0
        assert len(await stored_sites(db_session, user.id)) == 2

    @pytest.mark.asyncio
    async def test_only_new_properties_added(self, db_session, user, fake_gsc, make_site):
        await make_site(user, "sc-domain:a.com")
        fake_gsc.sites = ["sc-domain:a.com", "sc-domain:c.com"]

        result = await SiteReconciler(db_session, fake_gsc).discover(user.id)

        assert result.value == 1
        assert [s.property_id for s in await stored_sites(db_session, user.id)] == [
            "sc-domain:a.com",
            "sc-domain:c.com",
        ]

    @pytest.mark.asyncio
    async def test_duplicate_remote_ids_added_once(self, db_session, user, fake_gsc):
        fake_gsc.sites = ["sc-domain:a.com", "sc-domain:a.com"]
        result = await SiteReconciler(db_session, fake_gsc).discover(user.id)
        assert result.value == 1

    @pytest.mark.asyncio
    async def test_new_sites_land_in_default_group(self, db_session, user, fake_gsc):
        db_session.add(Group(user_id=user.id, display_name="Clients", email_owner=user.email))
        await db_session.commit()
        fake_gsc.sites = ["sc-domain:a.com"]

        await SiteReconciler(db_session, fake_gsc).discover(user.id)

        default = (
            await db_session.execute(select(Group).where(Group.user_id == user.id, Group.is_default.is_(True)))
        ).scalar_one()
        (site,) = await stored_sites(db_session, user.id)
        assert site.group_id == default.id

    @pytest.mark.asyncio
    async def test_empty_remote_list(self, db_session, user, fake_gsc):
        result = await SiteReconciler(db_session, fake_gsc).discover(user.id)
        assert result.ok
        assert result.value == 0


class TestDiscoverFailures:
    @pytest.mark.asyncio
    async def test_search_console_error_is_external(self, db_session, user, fake_gsc):
        user_id = user.id
        fake_gsc.fail_with()

        result = await SiteReconciler(db_session, fake_gsc).discover(user_id)

        assert not result.ok
        assert result.kind is ErrorKind.EXTERNAL
        assert result.error.startswith("Discovery failed:")
        assert await stored_sites(db_session, user_id) == []

    @pytest.mark.asyncio
    async def test_unknown_user(self, db_session, fake_gsc):
        result = await SiteReconciler(db_session, fake_gsc).discover(uuid.uuid4())
        assert result.kind is ErrorKind.NOT_FOUND
        assert fake_gsc.calls == []

    @pytest.mark.asyncio
    async def test_missing_refresh_token(self, db_session, user, fake_gsc):
        user.google_refresh_token = ""
        await db_session.commit()

        result = await SiteReconciler(db_session, fake_gsc).discover(user.id)

        assert result.kind is ErrorKind.NOT_FOUND
        assert result.error == "User or refresh token not found"
        assert fake_gsc.calls == []

    @pytest.mark.asyncio
    async def test_other_users_sites_do_not_count(self, db_session, user, fake_gsc, make_site):
        other = User(google_id="google-999", email="other@example.com", name="Other", google_refresh_token="t")
        db_session.add(other)
        await db_session.commit()
        await make_site(other, "sc-domain:a.com")
        fake_gsc.sites = ["sc-domain:a.com"]

        result = await SiteReconciler(db_session, fake_gsc).discover(user.id)

        assert result.value == 1
