"""Integration tests for the system-management API: menus, menu actions, roles, actions, grants."""

import json

from society_access.models.access import Action, Menu, MenuAction, RoleMenuAction
from society_access.services import audit_service


def _menu_id(db, url):
    return db.query(Menu).filter(Menu.menu_url == url).one().menu_id


def _action_id(db, name):
    return db.query(Action).filter(Action.action_name == name).one().action_id


def _menu_body(name, url, parent=0, position=0):
    return {"MenuName": name, "MenuURL": url, "ParentMenuID": parent, "Position": position}


PANEL = "/management-panel"
UTILITIES = "/management-panel?tab=utilities-bills"


class TestMenus:

    def test_list_is_parent_then_children(self, client, admin_headers):
        resp = client.get("/api/menus", headers=admin_headers)
        assert resp.status_code == 200
        menus = resp.json()
        assert menus[0]["MenuName"] == "Dashboard"
        assert menus[0]["ParentMenuName"] is None
        assert menus[1]["MenuName"] == "Society Management"
        assert menus[2]["ParentMenuName"] == "Society Management"

    def test_plain_user_cannot_list(self, client, user_headers):
        assert client.get("/api/menus", headers=user_headers).status_code == 403

    def test_manager_cannot_list(self, client, manager_headers):
        assert client.get("/api/menus", headers=manager_headers).status_code == 403

    def test_create_top_level_and_child(self, client, admin_headers):
        parent = client.post("/api/menus", json=_menu_body("Reports", "/reports", position=9), headers=admin_headers)
        assert parent.status_code == 201
        parent_id = parent.json()["MenuID"]
        assert parent.json()["ParentMenuID"] == 0

        child = client.post(
            "/api/menus",
            json=_menu_body("Monthly", "/reports?tab=monthly", parent=parent_id, position=1),
            headers=admin_headers,
        )
        assert child.status_code == 201
        assert child.json()["ParentMenuName"] == "Reports"

    def test_third_level_is_rejected(self, client, db, admin_headers):
        resp = client.post(
            "/api/menus",
            json=_menu_body("Too Deep", "/too-deep", parent=_menu_id(db, UTILITIES)),
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "INVALID_MENU_HIERARCHY"

    def test_missing_parent_is_rejected(self, client, admin_headers):
        resp = client.post("/api/menus", json=_menu_body("Lost", "/lost", parent=999), headers=admin_headers)
        assert resp.status_code == 400

    def test_menu_cannot_be_its_own_parent(self, client, admin_headers):
        menu_id = client.post("/api/menus", json=_menu_body("Loop", "/loop"), headers=admin_headers).json()["MenuID"]
        resp = client.put(
            f"/api/menus/{menu_id}", json=_menu_body("Loop", "/loop", parent=menu_id), headers=admin_headers
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "INVALID_MENU_HIERARCHY"

    def test_parent_with_children_cannot_move_under_another(self, client, db, admin_headers):
        panel_id = _menu_id(db, "/management-panel")
        resp = client.put(
            f"/api/menus/{panel_id}",
            json=_menu_body("Management Panel", "/management-panel", parent=_menu_id(db, "/")),
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_menu_offering_crud_cannot_take_a_tab_url(self, client, db, admin_headers):
        roles_id = _menu_id(db, "/system-management/roles")
        system_id = _menu_id(db, "/system-management")
        resp = client.put(
            f"/api/menus/{roles_id}",
            json=_menu_body("Roles", "/system-management?tab=roles", parent=system_id),
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "VALIDATION_ERROR"
        assert resp.json()["details"]["field"] == "MenuURL"

    def test_tab_menu_can_become_top_level(self, client, db, admin_headers):
        menu_id = _menu_id(db, UTILITIES)
        resp = client.put(
            f"/api/menus/{menu_id}", json=_menu_body("Utilities Bills", UTILITIES), headers=admin_headers
        )
        assert resp.status_code == 200
        assert resp.json()["ParentMenuID"] == 0

    def test_duplicate_url_conflicts(self, client, admin_headers):
        resp = client.post("/api/menus", json=_menu_body("Home Again", "/"), headers=admin_headers)
        assert resp.status_code == 409

    def test_url_must_be_absolute(self, client, admin_headers):
        resp = client.post("/api/menus", json=_menu_body("Relative", "relative"), headers=admin_headers)
        assert resp.status_code == 422

    def test_delete_parent_with_children_conflicts(self, client, db, admin_headers):
        resp = client.delete(f"/api/menus/{_menu_id(db, '/admin-tools')}", headers=admin_headers)
        assert resp.status_code == 409

    def test_delete_child_removes_mappings_and_grants(self, client, db, admin_headers):
        menu_id = _menu_id(db, UTILITIES)
        resp = client.delete(f"/api/menus/{menu_id}", headers=admin_headers)
        assert resp.status_code == 204
        assert db.query(MenuAction).filter(MenuAction.menu_id == menu_id).count() == 0
        assert db.query(RoleMenuAction).filter(RoleMenuAction.menu_id == menu_id).count() == 0
        assert client.get(f"/api/menus/{menu_id}", headers=admin_headers).status_code == 404


class TestMenuActions:

    def test_tab_menu_only_offers_view(self, client, db, admin_headers):
        parent_id = client.post(
            "/api/menus", json=_menu_body("Reports", "/reports"), headers=admin_headers
        ).json()["MenuID"]
        tab_id = client.post(
            "/api/menus",
            json=_menu_body("Monthly", "/reports?tab=monthly", parent=parent_id, position=1),
            headers=admin_headers,
        ).json()["MenuID"]

        rejected = client.post(
            "/api/menu-actions",
            json={"MenuID": tab_id, "ActionID": _action_id(db, "Add")},
            headers=admin_headers,
        )
        assert rejected.status_code == 400
        assert rejected.json()["error"] == "VALIDATION_ERROR"

        tab_view = client.post(
            "/api/menu-actions",
            json={"MenuID": tab_id, "ActionID": _action_id(db, "View")},
            headers=admin_headers,
        )
        assert tab_view.status_code == 201
        assert tab_view.json()["MenuName"] == "Monthly"

    def test_top_level_menu_offers_any_action(self, client, db, admin_headers):
        menu_id = client.post(
            "/api/menus", json=_menu_body("Reports", "/reports"), headers=admin_headers
        ).json()["MenuID"]
        accepted = client.post(
            "/api/menu-actions",
            json={"MenuID": menu_id, "ActionID": _action_id(db, "Add")},
            headers=admin_headers,
        )
        assert accepted.status_code == 201
        assert accepted.json()["ActionName"] == "Add"
        assert accepted.json()["MenuName"] == "Reports"

    def test_duplicate_pair_conflicts(self, client, db, admin_headers):
        resp = client.post(
            "/api/menu-actions",
            json={"MenuID": _menu_id(db, PANEL), "ActionID": _action_id(db, "Edit")},
            headers=admin_headers,
        )
        assert resp.status_code == 409

    def test_list_filtered_by_menu(self, client, db, admin_headers):
        def offered(url):
            resp = client.get("/api/menu-actions", params={"MenuID": _menu_id(db, url)}, headers=admin_headers)
            assert resp.status_code == 200
            return sorted(row["ActionName"] for row in resp.json())

        assert offered("/payment-management") == [
            "Add", "Delete", "Edit", "GeneratePaymentPlan", "View", "ViewPaymentPlan",
        ]
        assert offered("/payment-management?tab=payment-plans") == ["View"]

    def test_delete_mapping_drops_its_grants(self, client, db, admin_headers):
        menu_id, add_id = _menu_id(db, PANEL), _action_id(db, "Add")
        mapping = db.query(MenuAction).filter_by(menu_id=menu_id, action_id=add_id).one()
        assert db.query(RoleMenuAction).filter_by(menu_id=menu_id, action_id=add_id).count() == 2

        resp = client.delete(f"/api/menu-actions/{mapping.menu_action_id}", headers=admin_headers)
        assert resp.status_code == 204
        assert db.query(RoleMenuAction).filter_by(menu_id=menu_id, action_id=add_id).count() == 0

    def test_update_mapping_drops_grants_on_old_pair(self, client, db, admin_headers):
        menu_id, add_id = _menu_id(db, PANEL), _action_id(db, "Add")
        mapping = db.query(MenuAction).filter_by(menu_id=menu_id, action_id=add_id).one()

        resp = client.put(
            f"/api/menu-actions/{mapping.menu_action_id}",
            json={"MenuID": menu_id, "ActionID": _action_id(db, "GeneratePaymentPlan")},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["ActionName"] == "GeneratePaymentPlan"
        assert db.query(RoleMenuAction).filter_by(menu_id=menu_id, action_id=add_id).count() == 0


class TestRolesAndActions:

    def test_list_roles(self, client, admin_headers):
        resp = client.get("/api/roles", headers=admin_headers)
        assert [r["RoleName"] for r in resp.json()] == ["Administrator", "Manager", "User"]

    def test_create_and_delete_role(self, client, admin_headers):
        created = client.post("/api/roles", json={"RoleName": "Auditor"}, headers=admin_headers)
        assert created.status_code == 201
        role_id = created.json()["RoleID"]

        assert client.post("/api/roles", json={"RoleName": "Auditor"}, headers=admin_headers).status_code == 409
        assert client.delete(f"/api/roles/{role_id}", headers=admin_headers).status_code == 204
        assert client.get(f"/api/roles/{role_id}", headers=admin_headers).status_code == 404

    def test_role_held_by_users_cannot_be_deleted(self, client, admin_headers, plain_user, role_ids):
        resp = client.delete(f"/api/roles/{role_ids['User']}", headers=admin_headers)
        assert resp.status_code == 409
        assert resp.json()["details"]["users"] == 1

    def test_deleting_role_removes_its_grants(self, client, db, admin_headers, role_ids):
        manager_id = role_ids["Manager"]
        assert db.query(RoleMenuAction).filter_by(role_id=manager_id).count() > 0
        assert client.delete(f"/api/roles/{manager_id}", headers=admin_headers).status_code == 204
        assert db.query(RoleMenuAction).filter_by(role_id=manager_id).count() == 0

    def test_action_lifecycle(self, client, admin_headers):
        created = client.post("/api/actions", json={"ActionName": "Approve"}, headers=admin_headers)
        assert created.status_code == 201
        action_id = created.json()["ActionID"]

        renamed = client.put(f"/api/actions/{action_id}", json={"ActionName": "Authorize"}, headers=admin_headers)
        assert renamed.status_code == 200
        assert renamed.json()["ActionName"] == "Authorize"

        assert client.delete(f"/api/actions/{action_id}", headers=admin_headers).status_code == 204

    def test_action_with_grants_cannot_be_renamed(self, client, db, admin_headers):
        action_id = _action_id(db, "GeneratePaymentPlan")
        resp = client.put(f"/api/actions/{action_id}", json={"ActionName": "MakePlan"}, headers=admin_headers)
        assert resp.status_code == 409

    def test_view_action_is_immutable(self, client, db, admin_headers):
        resp = client.delete(f"/api/actions/{_action_id(db, 'View')}", headers=admin_headers)
        assert resp.status_code == 409

    def test_action_name_must_be_identifier(self, client, admin_headers):
        resp = client.post("/api/actions", json={"ActionName": "Can Do"}, headers=admin_headers)
        assert resp.status_code == 422


class TestRolePermissions:

    def test_grid_lists_every_mapped_pair(self, client, db, admin_headers, role_ids):
        resp = client.get(f"/api/role-permissions/{role_ids['User']}", headers=admin_headers)
        assert resp.status_code == 200
        rows = resp.json()["data"]
        assert len(rows) == db.query(MenuAction).count()

        dashboard = [r for r in rows if r["MenuName"] == "Dashboard"]
        assert dashboard == [{
            "RoleMenuActionID": dashboard[0]["RoleMenuActionID"],
            "RoleID": role_ids["User"],
            "MenuID": _menu_id(db, "/"),
            "ParentMenuID": 0,
            "ActionID": _action_id(db, "View"),
            "MenuName": "Dashboard",
            "ActionName": "View",
            "IsAllowed": True,
        }]
        assert not any(r["IsAllowed"] for r in rows if r["ActionName"] == "Delete")

    def test_grid_for_unknown_role_is_404(self, client, admin_headers):
        assert client.get("/api/role-permissions/999", headers=admin_headers).status_code == 404

    def test_bulk_replace_takes_effect_for_members(self, client, db, admin_headers, user_headers, role_ids):
        user_role = role_ids["User"]
        resp = client.post("/api/role-permissions", json={"RoleMenuActions": [
            {"RoleID": user_role, "MenuID": _menu_id(db, "/"), "ActionID": _action_id(db, "View"), "IsAllowed": True},
        ]}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json() == {"message": "Role permissions saved", "roles": [user_role], "granted": 1}
        entry = audit_service.history(db, action="grant_replace", resource_type="role", resource_id=user_role)[0]
        assert json.loads(entry.details) == {"granted": 1}

        def allowed(path):
            return client.get("/api/auth/check", params={"path": path}, headers=user_headers).json()["allowed"]

        assert allowed("/") is True
        assert allowed("/management-panel") is False

        menus = client.get("/api/auth/menu-tree", headers=user_headers).json()["menus"]
        assert [m["Title"] for m in menus] == ["Dashboard"]

    def test_bulk_grant_reaches_tab_screens(self, client, db, admin_headers, user_headers, role_ids):
        user_role = role_ids["User"]

        def entry(url, action, allowed=True):
            return {"RoleID": user_role, "MenuID": _menu_id(db, url), "ActionID": _action_id(db, action),
                    "IsAllowed": allowed}

        resp = client.post("/api/role-permissions", json={"RoleMenuActions": [
            entry(PANEL, "View"),
            entry(PANEL, "Add"),
            entry(PANEL, "Delete", allowed=False),
            entry(UTILITIES, "View"),
        ]}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["granted"] == 3

        def allowed(action):
            return client.get(
                "/api/auth/check", params={"path": UTILITIES, "action": action}, headers=user_headers
            ).json()["allowed"]

        assert allowed("CanView") is True
        assert allowed("CanAdd") is True
        assert allowed("CanDelete") is False

    def test_disallowed_entries_clear_a_role(self, client, db, admin_headers, user_headers, role_ids):
        resp = client.post("/api/role-permissions", json={"RoleMenuActions": [
            {"RoleID": role_ids["User"], "MenuID": _menu_id(db, "/"), "ActionID": _action_id(db, "View"),
             "IsAllowed": False},
        ]}, headers=admin_headers)
        assert resp.json()["granted"] == 0
        assert db.query(RoleMenuAction).filter_by(role_id=role_ids["User"]).count() == 0

        check = client.get("/api/auth/check", params={"path": "/"}, headers=user_headers)
        assert check.json()["allowed"] is False

    def test_other_roles_are_untouched(self, client, db, admin_headers, role_ids):
        before = db.query(RoleMenuAction).filter_by(role_id=role_ids["Manager"]).count()
        client.post("/api/role-permissions", json={"RoleMenuActions": [
            {"RoleID": role_ids["User"], "MenuID": _menu_id(db, "/"), "ActionID": _action_id(db, "View")},
        ]}, headers=admin_headers)
        assert db.query(RoleMenuAction).filter_by(role_id=role_ids["Manager"]).count() == before

    def test_unmapped_pair_is_rejected(self, client, db, admin_headers, role_ids):
        before = db.query(RoleMenuAction).count()
        resp = client.post("/api/role-permissions", json={"RoleMenuActions": [
            {"RoleID": role_ids["User"], "MenuID": _menu_id(db, "/"), "ActionID": _action_id(db, "Add")},
        ]}, headers=admin_headers)
        assert resp.status_code == 400
        assert db.query(RoleMenuAction).count() == before

    def test_empty_payload_is_rejected(self, client, admin_headers):
        resp = client.post("/api/role-permissions", json={"RoleMenuActions": []}, headers=admin_headers)
        assert resp.status_code == 400

    def test_unknown_role_is_404(self, client, db, admin_headers):
        resp = client.post("/api/role-permissions", json={"RoleMenuActions": [
            {"RoleID": 999, "MenuID": _menu_id(db, "/"), "ActionID": _action_id(db, "View")},
        ]}, headers=admin_headers)
        assert resp.status_code == 404

    def test_plain_user_cannot_edit_grants(self, client, db, user_headers, role_ids):
        resp = client.post("/api/role-permissions", json={"RoleMenuActions": [
            {"RoleID": role_ids["User"], "MenuID": _menu_id(db, "/"), "ActionID": _action_id(db, "View")},
        ]}, headers=user_headers)
        assert resp.status_code == 403


class TestPermissionRows:

    def test_rows_cover_every_menu_for_the_role(self, client, db, admin_headers, role_ids):
        resp = client.get("/api/permissions", params={"role_id": role_ids["User"]}, headers=admin_headers)
        assert resp.status_code == 200
        rows = resp.json()["data"]
        assert len(rows) == db.query(Menu).count()
        assert rows[0]["MenuURL"] == "/"
        assert rows[0]["RoleName"] == "User"
        assert rows[0]["CanView"] == 1
        assert rows[0]["CanAdd"] == 0
        assert set(rows[0]) >= {"CanGeneratePaymentPlan", "CanViewPaymentPlan"}

    def test_rows_for_all_roles(self, client, db, admin_headers):
        rows = client.get("/api/permissions", headers=admin_headers).json()["data"]
        assert len(rows) == 3 * db.query(Menu).count()
        assert [r["RoleName"] for r in rows[:1]] == ["Administrator"]
