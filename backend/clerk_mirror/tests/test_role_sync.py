"""
Tests for permission and role sync.
"""

import pytest

from clerk_mirror.api.schemas.clerk_events import EmbeddedPermission, PermissionPayload, RolePayload
from clerk_mirror.models import Permission, Role
from clerk_mirror.services.clerk_sync import PermissionSyncService, RoleSyncService


@pytest.fixture
def permission_service(db_session):
    return PermissionSyncService(db_session)


@pytest.fixture
def role_service(db_session, permission_service):
    return RoleSyncService(db_session, permission_service)


class TestPermissionSync:
    """Tests for PermissionSyncService."""

    def test_upsert(self, permission_service, db_session, sample_permission_data):
        result = permission_service.upsert_from_clerk(PermissionPayload.model_validate(sample_permission_data))

        permission = db_session.query(Permission).one()
        assert result.id == permission.id
        assert permission.key == "org:reports:read"
        assert permission.type == "user"
        assert permission.description == "View reports"

    def test_update_in_place(self, permission_service, db_session, sample_permission_data):
        permission_service.upsert_from_clerk(PermissionPayload.model_validate(sample_permission_data))
        sample_permission_data["name"] = "Read all reports"

        permission_service.upsert_from_clerk(PermissionPayload.model_validate(sample_permission_data))

        assert db_session.query(Permission).one().name == "Read all reports"

    def test_delete(self, permission_service, db_session, sample_permission_data):
        permission_service.upsert_from_clerk(PermissionPayload.model_validate(sample_permission_data))

        assert permission_service.delete_from_clerk("perm_123").success is True
        assert permission_service.delete_from_clerk("perm_123").reason == "permission_not_found"

    def test_embedded_object_defaults(self, permission_service):
        """A new embedded permission falls back to id for key, key for name, 'system' for type."""
        permission = permission_service.upsert_embedded(EmbeddedPermission(id="perm_bare"))

        assert permission.key == "perm_bare"
        assert permission.name == "perm_bare"
        assert permission.type == "system"
        assert permission.created_at

    def test_embedded_object_patches_only_defined_fields(self, permission_service, sample_permission_data):
        """An embedded object never blanks fields of an existing permission."""
        permission_service.upsert_from_clerk(PermissionPayload.model_validate(sample_permission_data))

        permission = permission_service.upsert_embedded(EmbeddedPermission(id="perm_123", name="Renamed"))

        assert permission.name == "Renamed"
        assert permission.key == "org:reports:read"
        assert permission.type == "user"
        assert permission.description == "View reports"

    def test_embedded_string_resolves_by_id_or_key(self, permission_service, sample_permission_data):
        permission_service.upsert_from_clerk(PermissionPayload.model_validate(sample_permission_data))

        by_id = permission_service.upsert_embedded("perm_123")
        by_key = permission_service.upsert_embedded("org:reports:read")

        assert by_id is not None
        assert by_id.id == by_key.id

    def test_embedded_string_never_creates(self, permission_service, db_session):
        assert permission_service.upsert_embedded("perm_unknown") is None
        assert db_session.query(Permission).count() == 0

    def test_embedded_object_without_id_is_skipped(self, permission_service, db_session):
        assert permission_service.upsert_embedded(EmbeddedPermission(key="org:x")) is None
        assert db_session.query(Permission).count() == 0


class TestRoleSync:
    """Tests for RoleSyncService."""

    def test_role_with_embedded_permissions(self, role_service, db_session, sample_role_data):
        """Embedded permissions are upserted before the role links them."""
        result = role_service.upsert_from_clerk(RolePayload.model_validate(sample_role_data))

        role = db_session.query(Role).one()
        permission = db_session.query(Permission).one()
        assert result.id == role.id
        assert role.permission_ids == [permission.id]
        assert role.permission_external_ids == ["perm_123"]
        assert role.is_creator_eligible is False

    def test_duplicates_are_dropped_in_order(self, role_service, db_session, permission_service, sample_permission_data):
        permission_service.upsert_from_clerk(PermissionPayload.model_validate(sample_permission_data))
        payload = RolePayload.model_validate({
            "id": "role_dup",
            "key": "org:dup",
            "name": "Dup",
            "permissions": [
                {"id": "perm_b", "key": "b"},
                "perm_123",
                {"id": "perm_b", "key": "b"},
                "org:reports:read",
                "perm_unknown",
            ],
        })

        role_service.upsert_from_clerk(payload)

        role = db_session.query(Role).one()
        assert role.permission_external_ids == ["perm_b", "perm_123"]

    def test_absent_permissions_leave_links(self, role_service, db_session, sample_role_data):
        """A role update without a permissions list keeps the stored links."""
        role_service.upsert_from_clerk(RolePayload.model_validate(sample_role_data))
        update = {k: v for k, v in sample_role_data.items() if k != "permissions"}
        update["name"] = "Senior Analyst"

        role_service.upsert_from_clerk(RolePayload.model_validate(update))

        role = db_session.query(Role).one()
        assert role.name == "Senior Analyst"
        assert role.permission_external_ids == ["perm_123"]

    def test_empty_permissions_clear_links(self, role_service, db_session, sample_role_data):
        role_service.upsert_from_clerk(RolePayload.model_validate(sample_role_data))
        sample_role_data["permissions"] = []

        role_service.upsert_from_clerk(RolePayload.model_validate(sample_role_data))

        role = db_session.query(Role).one()
        assert role.permission_ids == []
        assert role.permission_external_ids == []

    def test_get_with_permissions_drops_deleted(self, role_service, permission_service, db_session, sample_role_data):
        """Permissions deleted after the role was written are left out."""
        sample_role_data["permissions"].append({"id": "perm_gone", "key": "gone"})
        role_service.upsert_from_clerk(RolePayload.model_validate(sample_role_data))
        permission_service.delete_from_clerk("perm_gone")
        role = db_session.query(Role).one()

        found_role, permissions = role_service.get_with_permissions(role.id)

        assert found_role.id == role.id
        assert [p.external_id for p in permissions] == ["perm_123"]

    def test_get_with_permissions_missing_role(self, role_service):
        assert role_service.get_with_permissions("no-such-role") is None

    def test_delete(self, role_service, db_session, sample_role_data):
        """Deleting a role leaves its permissions in place."""
        role_service.upsert_from_clerk(RolePayload.model_validate(sample_role_data))

        assert role_service.delete_from_clerk("role_123").success is True
        assert role_service.delete_from_clerk("role_123").reason == "role_not_found"
        assert db_session.query(Permission).count() == 1


class TestCreatedAtColumn:
    """created_at is always stored for permissions and roles."""

    @pytest.mark.parametrize("model", [Permission, Role])
    def test_column_not_nullable(self, model):
        assert model.__table__.c.created_at.nullable is False

    def test_missing_created_at_is_stamped(self, role_service, db_session, sample_role_data):
        data = {k: v for k, v in sample_role_data.items() if k != "created_at"}

        role_service.upsert_from_clerk(RolePayload.model_validate(data))

        assert db_session.query(Role).one().created_at
        assert all(p.created_at for p in db_session.query(Permission).all())
