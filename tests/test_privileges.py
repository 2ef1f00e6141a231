"""Tests for the privilege catalog and its flattening."""

from __future__ import annotations

from pathlib import Path

import pytest

from bastion.core.privileges import (
    NONE,
    Privilege,
    PrivilegeCatalog,
    PrivilegeDefinition,
    PrivilegeIndex,
)
from bastion.data import load_yaml
from bastion.errors import ConfigurationError


def _index(data: dict, prefixes: tuple[str, ...] = ("indices:",)) -> PrivilegeIndex:
    return PrivilegeIndex.from_dict("index", data, prefixes)


class TestPrivilegeDefinition:
    """Test parsing of catalog entries."""

    def test_leaf(self) -> None:
        definition = PrivilegeDefinition.from_dict("read", {"actions": ["indices:data/read/*"]})
        assert not definition.is_group
        assert definition.actions == {"indices:data/read/*"}

    def test_group(self) -> None:
        definition = PrivilegeDefinition.from_dict("write", {"includes": ["index", "delete"]})
        assert definition.is_group
        assert definition.includes == ("index", "delete")

    def test_rejects_mixed_leaf_and_group(self) -> None:
        with pytest.raises(ConfigurationError, match="either list actions or include"):
            PrivilegeDefinition.from_dict("bad", {"actions": ["a"], "includes": ["b"]})

    def test_rejects_unknown_keys(self) -> None:
        with pytest.raises(ConfigurationError, match="unknown keys"):
            PrivilegeDefinition.from_dict("bad", {"action": ["a"]})

    @pytest.mark.parametrize("key", ["actions", "except", "includes"])
    def test_rejects_scalar_lists(self, key: str) -> None:
        with pytest.raises(ConfigurationError, match=f"{key} must be a list of strings"):
            PrivilegeDefinition.from_dict("monitor", {key: "cluster:monitor/*"})

    def test_scalar_actions_never_grant_everything(self) -> None:
        with pytest.raises(ConfigurationError):
            PrivilegeIndex.from_dict("cluster", {"monitor": {"actions": "cluster:monitor/*"}})

    def test_rejects_non_string_members(self) -> None:
        with pytest.raises(ConfigurationError, match="must be a list of strings"):
            PrivilegeDefinition.from_dict("bad", {"actions": [["cluster:*"]]})

    def test_empty_entry_is_a_leaf_without_actions(self) -> None:
        definition = PrivilegeDefinition.from_dict("none", None)
        assert definition.actions == frozenset()
        assert not definition.is_group


class TestPrivilegeIndex:
    """Test resolution of privilege names to action patterns."""

    def test_resolve_leaf(self) -> None:
        index = _index({"read": {"actions": ["indices:data/read/*"]}})
        read = index.resolve("read")
        assert read.check("indices:data/read/search")
        assert not read.check("indices:data/write/index")

    def test_resolve_group_is_union(self) -> None:
        index = _index(
            {
                "index": {"actions": ["indices:data/write/index*"]},
                "delete": {"actions": ["indices:data/write/delete*"]},
                "write": {"includes": ["index", "delete"]},
            }
        )
        write = index.resolve("write")
        assert write.check("indices:data/write/index")
        assert write.check("indices:data/write/delete")
        assert not write.check("indices:data/read/get")

    def test_nested_groups_flatten(self) -> None:
        index = _index(
            {
                "a": {"actions": ["x:a"]},
                "b": {"includes": ["a"]},
                "c": {"includes": ["b"]},
            },
            prefixes=(),
        )
        assert index.resolve("c").check("x:a")

    def test_except_subtracts_within_leaf(self) -> None:
        index = _index(
            {"p": {"actions": ["create", "write", "read", "delete"], "except": ["delete"]}},
            prefixes=(),
        )
        p = index.resolve("p")
        assert p.check("create")
        assert p.check("read")
        assert not p.check("delete")

    def test_except_does_not_leak_into_sibling_in_group(self) -> None:
        index = _index(
            {
                "no_delete": {"actions": ["data/*"], "except": ["data/delete"]},
                "delete": {"actions": ["data/delete"]},
                "both": {"includes": ["no_delete", "delete"]},
            },
            prefixes=(),
        )
        assert index.resolve("both").check("data/delete")
        assert not index.resolve("no_delete").check("data/delete")

    def test_cycle_is_rejected_at_build(self) -> None:
        with pytest.raises(ConfigurationError, match="Cyclic index privilege group: a -> b -> a"):
            _index({"a": {"includes": ["b"]}, "b": {"includes": ["a"]}})

    def test_self_cycle_is_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="Cyclic"):
            _index({"a": {"includes": ["a"]}})

    def test_unknown_group_member_is_rejected_at_build(self) -> None:
        with pytest.raises(ConfigurationError, match=r"includes unknown privilege \[missing\]"):
            _index({"a": {"includes": ["missing"]}})

    def test_group_cannot_include_conditional(self) -> None:
        with pytest.raises(ConfigurationError, match="cannot include conditional"):
            PrivilegeIndex.from_dict(
                "cluster",
                {
                    "own": {"actions": ["cluster:api_key/*"], "predicate": "owned_api_keys"},
                    "grp": {"includes": ["own"]},
                },
            )

    def test_unknown_name_fails_fast(self) -> None:
        index = _index({"read": {"actions": ["indices:data/read/*"]}})
        with pytest.raises(ConfigurationError, match=r"unknown index privilege \[raed\]"):
            index.resolve("raed")

    def test_raw_action_resolves_to_itself(self) -> None:
        index = _index({})
        privilege = index.resolve("indices:data/read/*")
        assert privilege.check("indices:data/read/get")
        assert not privilege.check("indices:data/write/index")

    def test_resolve_all_empty_is_none(self) -> None:
        index = _index({"read": {"actions": ["indices:data/read/*"]}})
        assert index.resolve_all([]) is NONE
        assert not NONE.check("indices:data/read/get")

    def test_resolve_all_unions(self) -> None:
        index = _index(
            {
                "read": {"actions": ["indices:data/read/*"]},
                "monitor": {"actions": ["indices:monitor/*"]},
            }
        )
        privilege = index.resolve_all(["read", "monitor"])
        assert privilege.name == "monitor,read"
        assert privilege.check("indices:monitor/stats")
        assert privilege.check("indices:data/read/get")

    def test_resolution_is_cached(self) -> None:
        index = _index({"read": {"actions": ["indices:data/read/*"]}})
        assert index.resolve("read") is index.resolve("read")

    def test_union_keeps_every_clause(self) -> None:
        privilege = Privilege.union(
            [
                _index({"a": {"actions": ["indices:a"]}}).resolve("a"),
                _index({"b": {"actions": ["indices:b"]}}).resolve("b"),
            ]
        )
        assert privilege.name == "a,b"
        assert privilege.check("indices:a")
        assert privilege.check("indices:b")
        assert not privilege.check("indices:c")

    def test_index_privilege_cannot_be_conditional(self) -> None:
        with pytest.raises(ConfigurationError, match="cannot have a predicate"):
            _index({"own": {"actions": ["indices:data/read/*"], "predicate": "owned_api_keys"}})

    def test_cluster_privilege_may_be_conditional(self) -> None:
        index = PrivilegeIndex.from_dict(
            "cluster", {"own": {"actions": ["cluster:api_key/*"], "predicate": "owned_api_keys"}}
        )
        assert index.resolve("own").predicate == "owned_api_keys"


class TestBundledCatalog:
    """Test the catalog shipped with the package."""

    def test_loads(self, catalog: PrivilegeCatalog) -> None:
        assert "manage_own_api_key" in catalog.cluster.names()
        assert "write" in catalog.index.names()

    def test_write_group(self, catalog: PrivilegeCatalog) -> None:
        write = catalog.index.resolve("write")
        for action in (
            "indices:data/write/index",
            "indices:data/write/bulk",
            "indices:data/write/delete",
            "indices:data/write/update",
            "indices:admin/mapping/auto_put",
        ):
            assert write.check(action), action
        assert not write.check("indices:admin/auto_create")
        assert not write.check("indices:data/read/search")

    def test_manage_excludes_security(self, catalog: PrivilegeCatalog) -> None:
        manage = catalog.cluster.resolve("manage")
        assert manage.check("cluster:admin/settings/update")
        assert manage.check("indices:admin/template/put")
        assert not manage.check("cluster:admin/xpack/security/user/put")

    def test_conditional_privilege_keeps_predicate(self, catalog: PrivilegeCatalog) -> None:
        assert catalog.cluster.resolve("manage_own_api_key").predicate == "owned_api_keys"
        assert catalog.cluster.resolve("monitor").predicate is None

    def test_cluster_template_actions_are_raw_actions(self, catalog: PrivilegeCatalog) -> None:
        privilege = catalog.cluster.resolve("indices:admin/template/get")
        assert privilege.check("indices:admin/template/get")

    def test_load_from_path(self, tmp_path: Path) -> None:
        path = tmp_path / "privileges.yaml"
        path.write_text("index:\n  read:\n    actions: ['indices:data/read/*']\n")
        catalog = PrivilegeCatalog.load(path)
        assert catalog.index.resolve("read").check("indices:data/read/get")
        assert catalog.cluster.names() == frozenset()

    def test_load_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "privileges.yaml"
        path.write_text("index: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Cannot load"):
            PrivilegeCatalog.load(path)

    def test_load_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError):
            PrivilegeCatalog.load(tmp_path / "missing.yaml")

    def test_load_requires_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "privileges.yaml"
        path.write_text("- read\n- write\n")
        with pytest.raises(ConfigurationError, match="must contain a mapping"):
            load_yaml("privileges.yaml", path)

    def test_load_bundled_resource(self) -> None:
        assert "fleet-server" in load_yaml("service_accounts.yaml")
