"""
Tests for invite-by-email upserts and linking pending invitations on sign-in.
"""

from __future__ import annotations

import pytest
from sqlmodel import select

from bidroom.core.permissions import resolve_package_access, resolve_project_access
from bidroom.models.membership import PackageMember, ProjectMember
from bidroom.models.org_member import OrgInvitation, OrgMember
from bidroom.services.memberships import (
    link_pending_memberships,
    normalize_email,
    upsert_package_member,
    upsert_project_member,
)
from bidroom_shared.schemas.common import (
    AccessLevel,
    MembershipStatus,
    PackageRole,
    ProjectRole,
)

from conftest import join_org, make_org, make_package, make_project, make_user


@pytest.fixture
async def setup(session):
    org = await make_org(session, "Acme")
    owner = await make_user(session, "owner@acme.com")
    await join_org(session, owner, org, "owner")
    project = await make_project(session, org, owner)
    package = await make_package(session, project)
    await session.commit()
    return org, owner, project, package


class TestNormalizeEmail:
    def test_lowercases_and_strips(self):
        assert normalize_email("  Jane.Doe@Example.COM ") == "jane.doe@example.com"


class TestUpsert:
    async def test_unknown_email_is_pending(self, session, setup):
        _, _, project, _ = setup
        member = await upsert_project_member(
            session, project.id, "New.Person@Acme.com", ProjectRole.TECHNICAL_LEAD
        )
        assert member.email == "new.person@acme.com"
        assert member.user_id is None
        assert member.status == MembershipStatus.INVITED

    async def test_existing_user_is_linked_immediately(self, session, setup):
        _, _, project, _ = setup
        user = await make_user(session, "known@acme.com")
        member = await upsert_project_member(
            session, project.id, "known@acme.com", ProjectRole.COMMERCIAL_LEAD
        )
        assert member.user_id == user.id
        assert member.status == MembershipStatus.ACTIVE

    async def test_existing_user_with_capitalised_email_is_linked(self, session, setup):
        _, _, _, package = setup
        user = await make_user(session, "Sam.Known@Acme.com")
        member = await upsert_package_member(
            session, package.id, "sam.known@acme.com", PackageRole.TECHNICAL_TEAM
        )
        assert member.email == "sam.known@acme.com"
        assert member.user_id == user.id
        assert member.status == MembershipStatus.ACTIVE

    async def test_second_upsert_changes_role_not_row_count(self, session, setup):
        _, _, _, package = setup
        await upsert_package_member(session, package.id, "x@acme.com", PackageRole.TECHNICAL_TEAM)
        await upsert_package_member(session, package.id, "X@acme.com", PackageRole.PACKAGE_LEAD)
        await session.commit()

        result = await session.execute(
            select(PackageMember).where(PackageMember.package_id == package.id)
        )
        rows = result.scalars().all()
        assert len(rows) == 1
        assert rows[0].role == "package_lead"


class TestLinkPendingMemberships:
    async def test_links_project_and_package_rows(self, session, setup):
        org, _, project, package = setup
        await upsert_project_member(session, project.id, "late@acme.com", ProjectRole.TECHNICAL_LEAD)
        await upsert_package_member(session, package.id, "late@acme.com", PackageRole.COMMERCIAL_TEAM)
        await session.commit()

        user = await make_user(session, "late@acme.com")
        await session.commit()

        before = await resolve_project_access(session, user.id, project.id, org.id)
        assert before.access == AccessLevel.NONE

        counts = await link_pending_memberships(session, user.id, "Late@Acme.com")
        await session.commit()

        assert counts.project_memberships_linked == 1
        assert counts.package_memberships_linked == 1
        assert counts.orgs_joined == 1

        project_access = await resolve_project_access(session, user.id, project.id, org.id)
        package_access = await resolve_package_access(session, user.id, package.id, org.id)
        assert project_access.access == AccessLevel.TECHNICAL
        assert project_access.org_role is not None
        assert package_access.access == AccessLevel.COMMERCIAL

    async def test_accepts_org_invitation_with_invited_role(self, session, setup):
        org, owner, _, _ = setup
        session.add(OrgInvitation(org_id=org.id, email="admin@acme.com", role="admin", inviter_id=owner.id))
        await session.commit()
        user = await make_user(session, "admin@acme.com")
        await session.commit()

        counts = await link_pending_memberships(session, user.id, user.email)
        await session.commit()

        assert counts.invitations_accepted == 1
        assert counts.orgs_joined == 0
        membership = (
            await session.execute(
                select(OrgMember).where(OrgMember.user_id == user.id, OrgMember.org_id == org.id)
            )
        ).scalar_one()
        assert membership.role == "admin"
        invitation = (
            await session.execute(select(OrgInvitation).where(OrgInvitation.email == "admin@acme.com"))
        ).scalar_one()
        assert invitation.status == "accepted"

    async def test_existing_org_membership_is_untouched(self, session, setup):
        org, _, project, _ = setup
        user = await make_user(session, "already@acme.com")
        await join_org(session, user, org, "admin")
        session.add(ProjectMember(project_id=project.id, email=user.email, role="project_lead"))
        await session.commit()

        counts = await link_pending_memberships(session, user.id, user.email)
        await session.commit()

        assert counts.project_memberships_linked == 1
        assert counts.orgs_joined == 0
        role = (
            await session.execute(
                select(OrgMember.role).where(OrgMember.user_id == user.id, OrgMember.org_id == org.id)
            )
        ).scalar_one()
        assert role == "admin"

    async def test_idempotent(self, session, setup):
        _, _, project, _ = setup
        await upsert_project_member(session, project.id, "twice@acme.com", ProjectRole.PROJECT_LEAD)
        user = await make_user(session, "twice@acme.com")
        await session.commit()

        await link_pending_memberships(session, user.id, user.email)
        await session.commit()
        second = await link_pending_memberships(session, user.id, user.email)
        await session.commit()

        assert second.project_memberships_linked == 0
        assert second.package_memberships_linked == 0
        assert second.invitations_accepted == 0
        assert second.orgs_joined == 0
