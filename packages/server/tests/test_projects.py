"""
Integration tests for Project endpoints.

Tests cover:
- Listing visibility (owner, creator, project member, package member)
- Project detail: package filtering and award visibility
- Rename / archive / restore permissions and messages
- Project membership by email
- Package creation under a project
"""

from __future__ import annotations

import uuid

import pytest

from bidroom.core import errors

from conftest import (
    add_package_member,
    add_project_member,
    auth_headers,
    join_org,
    make_asset,
    make_org,
    make_package,
    make_project,
    make_user,
)


@pytest.fixture
async def acme(session):
    org = await make_org(session, "Acme")
    owner = await make_user(session, "owner@acme.com")
    admin = await make_user(session, "admin@acme.com")
    lead = await make_user(session, "lead@acme.com", name="Lee Lead")
    tech = await make_user(session, "tech@acme.com")
    outsider = await make_user(session, "outsider@acme.com")
    for user, role in [
        (owner, "owner"),
        (admin, "admin"),
        (lead, "member"),
        (tech, "member"),
        (outsider, "member"),
    ]:
        await join_org(session, user, org, role)

    tower = await make_project(session, org, admin, "Tower A")
    bridge = await make_project(session, org, admin, "Bridge")
    facade = await make_package(session, tower, "Facade", contractors=2)
    mep = await make_package(session, tower, "MEP", contractors=2)
    await make_asset(session, facade, "Lot 1")
    await make_asset(session, facade, "Lot 2")
    await add_project_member(session, tower, lead, "project_lead")
    await add_package_member(session, facade, tech, "technical_team")
    await session.commit()
    return {
        "org": org,
        "owner": owner,
        "admin": admin,
        "lead": lead,
        "tech": tech,
        "outsider": outsider,
        "tower": tower,
        "bridge": bridge,
        "facade": facade,
        "mep": mep,
    }


def _names(items):
    return sorted(item["name"] for item in items)


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


class TestListProjects:
    @pytest.mark.asyncio
    async def test_owner_sees_everything(self, client, acme):
        resp = await client.get("/api/v1/projects", headers=auth_headers(acme["owner"], acme["org"]))
        assert resp.status_code == 200
        assert _names(resp.json()) == ["Bridge", "Tower A"]

    @pytest.mark.asyncio
    async def test_creator_sees_own_projects(self, client, acme):
        resp = await client.get("/api/v1/projects", headers=auth_headers(acme["admin"], acme["org"]))
        assert _names(resp.json()) == ["Bridge", "Tower A"]

    @pytest.mark.asyncio
    async def test_project_member_sees_project(self, client, acme):
        resp = await client.get("/api/v1/projects", headers=auth_headers(acme["lead"], acme["org"]))
        assert _names(resp.json()) == ["Tower A"]

    @pytest.mark.asyncio
    async def test_package_member_sees_parent_project_once(self, client, session, acme):
        await add_package_member(session, acme["mep"], acme["tech"], "commercial_team")
        await session.commit()
        resp = await client.get("/api/v1/projects", headers=auth_headers(acme["tech"], acme["org"]))
        assert _names(resp.json()) == ["Tower A"]

    @pytest.mark.asyncio
    async def test_outsider_sees_nothing(self, client, acme):
        resp = await client.get(
            "/api/v1/projects", headers=auth_headers(acme["outsider"], acme["org"])
        )
        assert resp.json() == []

    @pytest.mark.asyncio
    async def test_enrichment(self, client, session, acme):
        contractor_id = uuid.uuid4()
        acme["facade"].awarded_contractor_id = contractor_id
        session.add(acme["facade"])
        await session.commit()

        resp = await client.get("/api/v1/projects", headers=auth_headers(acme["owner"], acme["org"]))
        tower = next(p for p in resp.json() if p["name"] == "Tower A")
        assert tower["package_count"] == 2
        assert tower["awarded_package_count"] == 1
        assert _names(tower["packages"]) == ["Facade", "MEP"]
        assert [m["email"] for m in tower["team_members"]] == ["lead@acme.com"]
        assert tower["team_members"][0]["name"] == "Lee Lead"

    @pytest.mark.asyncio
    async def test_other_org_projects_hidden(self, client, session, acme):
        globex = await make_org(session, "Globex")
        await make_project(session, globex, acme["owner"], "Foreign")
        await session.commit()
        resp = await client.get("/api/v1/projects", headers=auth_headers(acme["owner"], acme["org"]))
        assert "Foreign" not in _names(resp.json())


# ---------------------------------------------------------------------------
# Detail
# ---------------------------------------------------------------------------


class TestProjectDetail:
    @pytest.mark.asyncio
    async def test_project_level_access_sees_all_packages(self, client, acme):
        resp = await client.get(
            f"/api/v1/projects/{acme['tower'].id}", headers=auth_headers(acme["lead"], acme["org"])
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["project"]["name"] == "Tower A"
        assert _names(data["packages"]) == ["Facade", "MEP"]
        facade = next(p for p in data["packages"] if p["name"] == "Facade")
        assert facade["asset_count"] == 2

    @pytest.mark.asyncio
    async def test_package_member_sees_only_own_packages(self, client, acme):
        resp = await client.get(
            f"/api/v1/projects/{acme['tower'].id}", headers=auth_headers(acme["tech"], acme["org"])
        )
        assert resp.status_code == 200
        assert _names(resp.json()["packages"]) == ["Facade"]

    @pytest.mark.asyncio
    async def test_award_hidden_without_commercial_access(self, client, session, acme):
        contractor_id = uuid.uuid4()
        acme["facade"].awarded_contractor_id = contractor_id
        session.add(acme["facade"])
        await session.commit()

        tech = await client.get(
            f"/api/v1/projects/{acme['tower'].id}", headers=auth_headers(acme["tech"], acme["org"])
        )
        assert tech.json()["packages"][0]["awarded_contractor_id"] is None

        owner = await client.get(
            f"/api/v1/projects/{acme['tower'].id}", headers=auth_headers(acme["owner"], acme["org"])
        )
        facade = next(p for p in owner.json()["packages"] if p["name"] == "Facade")
        assert facade["awarded_contractor_id"] == str(contractor_id)

    @pytest.mark.asyncio
    async def test_no_access_is_403(self, client, acme):
        resp = await client.get(
            f"/api/v1/projects/{acme['tower'].id}",
            headers=auth_headers(acme["outsider"], acme["org"]),
        )
        assert resp.status_code == 403
        assert resp.json()["detail"] == errors.no_access("project")

    @pytest.mark.asyncio
    async def test_unknown_project_looks_like_no_access(self, client, acme):
        resp = await client.get(
            f"/api/v1/projects/{uuid.uuid4()}", headers=auth_headers(acme["owner"], acme["org"])
        )
        assert resp.status_code == 403
        assert resp.json()["detail"] == errors.no_access("project")

    @pytest.mark.asyncio
    async def test_malformed_id_is_422(self, client, acme):
        resp = await client.get(
            "/api/v1/projects/not-a-uuid", headers=auth_headers(acme["owner"], acme["org"])
        )
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_access_endpoint(self, client, acme):
        resp = await client.get(
            f"/api/v1/projects/{acme['tower'].id}/access",
            headers=auth_headers(acme["tech"], acme["org"]),
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["access"] == "technical"
        assert data["package_role"] == "technical_team"
        assert data["has_project_level_access"] is False

    @pytest.mark.asyncio
    async def test_access_endpoint_cross_tenant(self, client, session, acme):
        globex = await make_org(session, "Globex")
        await join_org(session, acme["lead"], globex, "owner")
        await session.commit()
        resp = await client.get(
            f"/api/v1/projects/{acme['tower'].id}/access",
            headers=auth_headers(acme["lead"], globex),
        )
        data = resp.json()
        assert data["access"] == "none"
        assert data["org_role"] is None
        assert data["project_role"] is None


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


class TestProjectMutations:
    @pytest.mark.asyncio
    async def test_lead_can_rename(self, client, acme):
        resp = await client.patch(
            f"/api/v1/projects/{acme['tower'].id}",
            json={"name": " Tower A1 "},
            headers=auth_headers(acme["lead"], acme["org"]),
        )
        assert resp.status_code == 200
        assert resp.json()["name"] == "Tower A1"

    @pytest.mark.asyncio
    async def test_technical_access_cannot_rename(self, client, acme):
        resp = await client.patch(
            f"/api/v1/projects/{acme['tower'].id}",
            json={"name": "Hijack"},
            headers=auth_headers(acme["tech"], acme["org"]),
        )
        assert resp.status_code == 403
        assert resp.json()["detail"] == errors.no_permission_rename("project")

    @pytest.mark.asyncio
    async def test_archive_and_restore(self, client, acme):
        headers = auth_headers(acme["lead"], acme["org"])
        project_id = acme["tower"].id

        resp = await client.post(f"/api/v1/projects/{project_id}/archive", headers=headers)
        assert resp.status_code == 200

        listed = await client.get("/api/v1/projects", headers=headers)
        assert listed.json() == []
        archived = await client.get("/api/v1/projects/archived", headers=headers)
        assert [p["name"] for p in archived.json()] == ["Tower A"]

        resp = await client.post(f"/api/v1/projects/{project_id}/restore", headers=headers)
        assert resp.status_code == 200
        listed = await client.get("/api/v1/projects", headers=headers)
        assert _names(listed.json()) == ["Tower A"]

    @pytest.mark.asyncio
    async def test_archive_needs_full_access(self, client, acme):
        resp = await client.post(
            f"/api/v1/projects/{acme['tower'].id}/archive",
            headers=auth_headers(acme["tech"], acme["org"]),
        )
        assert resp.status_code == 403
        assert resp.json()["detail"] == errors.no_permission_archive("project")

    @pytest.mark.asyncio
    async def test_create_makes_creator_project_lead(self, client, acme):
        headers = auth_headers(acme["owner"], acme["org"])
        resp = await client.post("/api/v1/projects", json={"name": "Depot", "country": "NZ"}, headers=headers)
        assert resp.status_code == 201
        project_id = resp.json()["id"]

        members = await client.get(f"/api/v1/projects/{project_id}/members", headers=headers)
        assert [(m["email"], m["role"]) for m in members.json()] == [("owner@acme.com", "project_lead")]


# ---------------------------------------------------------------------------
# Membership
# ---------------------------------------------------------------------------


class TestProjectMembers:
    @pytest.mark.asyncio
    async def test_invite_unknown_email_is_pending(self, client, acme):
        resp = await client.post(
            f"/api/v1/projects/{acme['tower'].id}/members",
            json={"email": "Someone.New@Acme.com", "role": "commercial_lead"},
            headers=auth_headers(acme["lead"], acme["org"]),
        )
        assert resp.status_code == 201
        data = resp.json()
        assert data["email"] == "someone.new@acme.com"
        assert data["status"] == "invited"
        assert data["user_id"] is None

    @pytest.mark.asyncio
    async def test_invite_existing_user_is_active(self, client, acme):
        resp = await client.post(
            f"/api/v1/projects/{acme['tower'].id}/members",
            json={"email": "outsider@acme.com", "role": "technical_lead"},
            headers=auth_headers(acme["lead"], acme["org"]),
        )
        assert resp.json()["status"] == "active"

        access = await client.get(
            f"/api/v1/projects/{acme['tower'].id}/access",
            headers=auth_headers(acme["outsider"], acme["org"]),
        )
        assert access.json()["access"] == "technical"

    @pytest.mark.asyncio
    async def test_invalid_role_is_422(self, client, acme):
        resp = await client.post(
            f"/api/v1/projects/{acme['tower'].id}/members",
            json={"email": "x@acme.com", "role": "package_lead"},
            headers=auth_headers(acme["lead"], acme["org"]),
        )
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_invite_needs_full_access(self, client, acme):
        resp = await client.post(
            f"/api/v1/projects/{acme['tower'].id}/members",
            json={"email": "x@acme.com", "role": "technical_lead"},
            headers=auth_headers(acme["tech"], acme["org"]),
        )
        assert resp.status_code == 403
        assert resp.json()["detail"] == errors.no_permission_invite("project")

    @pytest.mark.asyncio
    async def test_remove_member(self, client, acme):
        headers = auth_headers(acme["owner"], acme["org"])
        resp = await client.delete(
            f"/api/v1/projects/{acme['tower'].id}/members/LEAD@acme.com", headers=headers
        )
        assert resp.status_code == 200

        members = await client.get(f"/api/v1/projects/{acme['tower'].id}/members", headers=headers)
        assert members.json() == []

        # The removed lead loses access immediately.
        access = await client.get(
            f"/api/v1/projects/{acme['tower'].id}/access",
            headers=auth_headers(acme["lead"], acme["org"]),
        )
        assert access.json()["access"] == "none"

    @pytest.mark.asyncio
    async def test_remove_unknown_member_is_404(self, client, acme):
        resp = await client.delete(
            f"/api/v1/projects/{acme['tower'].id}/members/nobody@acme.com",
            headers=auth_headers(acme["owner"], acme["org"]),
        )
        assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Package creation
# ---------------------------------------------------------------------------


class TestCreatePackage:
    @pytest.mark.asyncio
    async def test_create_package(self, client, acme):
        headers = auth_headers(acme["lead"], acme["org"])
        resp = await client.post(
            f"/api/v1/projects/{acme['tower'].id}/packages",
            json={"name": " Roofing ", "currency": "EUR", "contractors": ["Alpha", " Beta "]},
            headers=headers,
        )
        assert resp.status_code == 201
        package = resp.json()
        assert package["name"] == "Roofing"
        assert package["technical_weight"] == 50

        contractors = await client.get(f"/api/v1/packages/{package['id']}/contractors", headers=headers)
        assert sorted(c["name"] for c in contractors.json()) == ["Alpha", "Beta"]

        members = await client.get(f"/api/v1/packages/{package['id']}/members", headers=headers)
        assert [(m["email"], m["role"]) for m in members.json()] == [("lead@acme.com", "package_lead")]

    @pytest.mark.asyncio
    async def test_needs_two_contractors(self, client, acme):
        resp = await client.post(
            f"/api/v1/projects/{acme['tower'].id}/packages",
            json={"name": "Roofing", "contractors": ["Alpha"]},
            headers=auth_headers(acme["lead"], acme["org"]),
        )
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_needs_full_project_access(self, client, acme):
        resp = await client.post(
            f"/api/v1/projects/{acme['tower'].id}/packages",
            json={"name": "Roofing", "contractors": ["Alpha", "Beta"]},
            headers=auth_headers(acme["tech"], acme["org"]),
        )
        assert resp.status_code == 403
        assert resp.json()["detail"] == errors.NO_PERMISSION_CREATE_PACKAGE

    @pytest.mark.asyncio
    async def test_package_lead_with_capitalised_email_keeps_access(self, client, session, acme):
        lead = await make_user(session, "Pat.Lead@Acme.com")
        await join_org(session, lead, acme["org"], "member")
        await add_package_member(session, acme["facade"], lead, "package_lead")
        await session.commit()
        headers = auth_headers(lead, acme["org"])

        resp = await client.post(
            f"/api/v1/projects/{acme['tower'].id}/packages",
            json={"name": "Roofing", "contractors": ["Alpha", "Beta"]},
            headers=headers,
        )
        assert resp.status_code == 201
        package_id = resp.json()["id"]

        access = await client.get(f"/api/v1/packages/{package_id}/access", headers=headers)
        assert access.json()["access"] == "full"
        assert access.json()["package_role"] == "package_lead"

        members = await client.get(f"/api/v1/packages/{package_id}/members", headers=headers)
        assert [(m["email"], m["status"]) for m in members.json()] == [("pat.lead@acme.com", "active")]
