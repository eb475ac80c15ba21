"""Tests for permission map building and resolution, pure functions with no DB."""

from society_access.services.permission_service import (
    build_permission_map,
    granted_actions,
    has_permission,
    has_query_string,
    normalize_path,
    permission_name,
)


def _map(*rows):
    return build_permission_map(list(rows))


class TestBuildPermissionMap:

    def test_empty_input_gives_empty_map(self):
        assert build_permission_map([]) == {}
        assert build_permission_map(None) == {}

    def test_identity_fields_are_not_permissions(self):
        pm = _map({
            "RoleID": 1, "RoleName": "Admin", "MenuID": 4, "MenuName": "Panel",
            "ParentMenuID": 0, "MenuURL": "/panel", "CanView": 1, "CanAdd": 0,
        })
        assert pm == {"/panel": {"CanView": True, "CanAdd": False}}

    def test_rows_without_url_are_skipped(self):
        pm = _map(
            {"MenuURL": None, "CanView": 1},
            {"MenuURL": "", "CanView": 1},
            {"CanView": 1},
            {"MenuURL": "/ok", "CanView": 1},
        )
        assert list(pm) == ["/ok"]

    def test_non_mapping_rows_are_skipped(self):
        pm = build_permission_map(["junk", 3, None, {"MenuURL": "/", "CanView": 1}])
        assert list(pm) == ["/"]

    def test_only_exact_one_counts_as_granted(self):
        pm = _map({"MenuURL": "/", "CanView": 1, "CanAdd": True, "CanEdit": "1", "CanDelete": 2})
        assert pm["/"] == {"CanView": True, "CanAdd": True, "CanEdit": False, "CanDelete": False}

    def test_later_row_for_same_url_replaces_earlier(self):
        pm = _map(
            {"MenuURL": "/a", "CanView": 1},
            {"MenuURL": "/b", "CanView": 1},
            {"MenuURL": "/a", "CanView": 0, "CanEdit": 1},
        )
        assert pm["/a"] == {"CanView": False, "CanEdit": True}
        assert list(pm) == ["/a", "/b"]

    def test_build_is_idempotent(self):
        rows = [
            {"MenuURL": "/", "CanView": 1},
            {"MenuURL": "/payments", "CanView": 1, "CanGeneratePaymentPlan": 1},
        ]
        assert build_permission_map(rows) == build_permission_map(rows)

    def test_open_action_vocabulary(self):
        pm = _map({"MenuURL": "/payment-management", "CanGeneratePaymentPlan": 1})
        assert has_permission(pm, "/payment-management", "CanGeneratePaymentPlan") is True


class TestHasPermission:

    def test_scenario_root_view_only(self):
        pm = _map({"MenuURL": "/", "CanView": 1, "CanAdd": 0})
        assert has_permission(pm, "/", "CanView") is True
        assert has_permission(pm, "/", "CanAdd") is False
        assert has_permission(pm, "/", "CanDelete") is False

    def test_query_string_is_ignored(self):
        pm = _map({"MenuURL": "/management-panel", "CanView": 1})
        assert has_permission(pm, "/management-panel?tab=utilities-bills", "CanView") is True

    def test_default_deny(self):
        pm = _map({"MenuURL": "/a", "CanView": 1})
        assert has_permission(pm, "/zzz", "CanView") is False
        assert has_permission({}, "/a", "CanView") is False
        assert has_permission(None, "/a", "CanView") is False
        assert has_permission(pm, None, "CanView") is False
        assert has_permission(pm, "/a", None) is False

    def test_unknown_action_is_denied(self):
        pm = _map({"MenuURL": "/a", "CanView": 1})
        assert has_permission(pm, "/a", "CanLaunchRockets") is False

    def test_trailing_slash_is_normalized(self):
        pm = _map({"MenuURL": "/admin-tools", "CanView": 1})
        assert has_permission(pm, "/admin-tools/", "CanView") is True
        assert has_permission(pm, "/admin-tools/?tab=users", "CanView") is True

    def test_exact_match_beats_earlier_prefix(self):
        pm = _map(
            {"MenuURL": "/", "CanView": 1, "CanEdit": 0},
            {"MenuURL": "/admin", "CanView": 0, "CanEdit": 1},
        )
        assert has_permission(pm, "/admin", "CanEdit") is True
        assert has_permission(pm, "/admin", "CanView") is False

    def test_prefix_fallback_uses_first_inserted_key(self):
        pm = _map(
            {"MenuURL": "/admin", "CanView": 1},
            {"MenuURL": "/admin/users", "CanView": 0},
        )
        assert has_permission(pm, "/admin/users/42", "CanView") is True

    def test_root_key_shadows_unknown_paths(self):
        # Known hazard: "/" is a prefix of every path.
        pm = _map(
            {"MenuURL": "/", "CanView": 1},
            {"MenuURL": "/reports", "CanView": 0},
        )
        assert has_permission(pm, "/anything-else", "CanView") is True
        assert has_permission(pm, "/reports", "CanView") is False

    def test_never_raises_on_malformed_map(self):
        pm = {"/a": "not-a-mapping", 5: {"CanView": True}}
        assert has_permission(pm, "/a", "CanView") is False
        assert has_permission(pm, "/b", "CanView") is False


class TestHelpers:

    def test_normalize_path(self):
        assert normalize_path("/") == "/"
        assert normalize_path("/x/") == "/x"
        assert normalize_path("/x//") == "/x/"
        assert normalize_path("/x?tab=a") == "/x"
        assert normalize_path("/?tab=a") == "/"

    def test_has_query_string(self):
        assert has_query_string("/payment-management?tab=payment-plans") is True
        assert has_query_string("/payment-management") is False
        assert has_query_string(None) is False

    def test_permission_name(self):
        assert permission_name("View") == "CanView"
        assert permission_name("GeneratePaymentPlan") == "CanGeneratePaymentPlan"

    def test_granted_actions(self):
        pm = _map({"MenuURL": "/p", "CanView": 1, "CanAdd": 1, "CanDelete": 0})
        assert granted_actions(pm, "/p?tab=x") == {"CanView", "CanAdd"}
        assert granted_actions(pm, "/nope") == set()
