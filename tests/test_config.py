import pytest

from gtreex import config as gt_config
from gtreex.core import NONE, GTree
from gtreex.errors import TreeStructureError


def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in [
        "GTREEX_LOG_LEVEL",
        "GTREEX_POOL_CAPACITY",
        "GTREEX_POOL_GROWABLE",
        "GTREEX_POOL_MAX_CAPACITY",
        "GTREEX_VALIDATE",
    ]:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def _reset_cache():
    gt_config.reset_runtime_config_cache()
    yield
    gt_config.reset_runtime_config_cache()


def test_runtime_config_defaults(monkeypatch: pytest.MonkeyPatch):
    _clear_env(monkeypatch)

    runtime = gt_config.runtime_config()

    assert runtime.log_level == "INFO"
    assert runtime.pool_capacity == 16
    assert runtime.pool_growable is True
    assert runtime.pool_max_capacity is None
    assert runtime.validate_mutations is False
    assert runtime.bounded is False


def test_pool_overrides(monkeypatch: pytest.MonkeyPatch):
    _clear_env(monkeypatch)
    monkeypatch.setenv("GTREEX_POOL_CAPACITY", "4")
    monkeypatch.setenv("GTREEX_POOL_MAX_CAPACITY", "8")
    monkeypatch.setenv("GTREEX_POOL_GROWABLE", "yes")

    runtime = gt_config.runtime_config()

    assert runtime.pool_capacity == 4
    assert runtime.pool_max_capacity == 8
    assert runtime.bounded is True

    tree = GTree()
    assert tree.pool.capacity == 4
    assert tree.pool.max_capacity == 8


def test_invalid_capacity(monkeypatch: pytest.MonkeyPatch):
    _clear_env(monkeypatch)
    monkeypatch.setenv("GTREEX_POOL_CAPACITY", "many")

    with pytest.raises(ValueError):
        gt_config.runtime_config()


def test_invalid_boolean_flag(monkeypatch: pytest.MonkeyPatch):
    _clear_env(monkeypatch)
    monkeypatch.setenv("GTREEX_VALIDATE", "maybe")

    with pytest.raises(ValueError, match="maybe"):
        gt_config.runtime_config()


def test_invalid_growable_flag(monkeypatch: pytest.MonkeyPatch):
    _clear_env(monkeypatch)
    monkeypatch.setenv("GTREEX_POOL_GROWABLE", "sometimes")

    with pytest.raises(ValueError):
        gt_config.runtime_config()


def test_max_capacity_below_capacity(monkeypatch: pytest.MonkeyPatch):
    _clear_env(monkeypatch)
    monkeypatch.setenv("GTREEX_POOL_CAPACITY", "32")
    monkeypatch.setenv("GTREEX_POOL_MAX_CAPACITY", "8")

    with pytest.raises(ValueError):
        gt_config.runtime_config()


def test_invalid_log_level(monkeypatch: pytest.MonkeyPatch):
    _clear_env(monkeypatch)
    monkeypatch.setenv("GTREEX_LOG_LEVEL", "chatty")

    with pytest.raises(ValueError):
        gt_config.runtime_config()


def test_validate_flag_reaches_tree(monkeypatch: pytest.MonkeyPatch):
    _clear_env(monkeypatch)
    monkeypatch.setenv("GTREEX_VALIDATE", "1")

    tree = GTree(0)
    assert tree.validate_mutations is True
    tree.add_child(tree.root, 1)


def test_validating_tree_rejects_mutation_on_corrupted_links(monkeypatch: pytest.MonkeyPatch):
    _clear_env(monkeypatch)
    monkeypatch.setenv("GTREEX_VALIDATE", "1")

    tree = GTree(0, capacity=4)
    child = tree.add_child(tree.root, 1)
    leaf = tree.add_child(child, 2)
    tree.pool.set_link(leaf, "parent", NONE)

    with pytest.raises(TreeStructureError):
        tree.add_child(tree.root, 3)


def test_non_validating_tree_accepts_mutation_on_corrupted_links(monkeypatch: pytest.MonkeyPatch):
    _clear_env(monkeypatch)

    tree = GTree(0, capacity=4)
    child = tree.add_child(tree.root, 1)
    leaf = tree.add_child(child, 2)
    tree.pool.set_link(leaf, "parent", NONE)

    tree.add_child(tree.root, 3)
    with pytest.raises(TreeStructureError):
        tree.validate()


def test_kill_subtree_skips_validation_on_validating_tree(monkeypatch: pytest.MonkeyPatch):
    _clear_env(monkeypatch)
    monkeypatch.setenv("GTREEX_VALIDATE", "1")

    tree = GTree(0, capacity=4)
    child = tree.add_child(tree.root, 1)
    tree.add_child(child, 2)

    assert tree.kill_subtree(child) == 2
    with pytest.raises(TreeStructureError):
        tree.validate()
