import io

import numpy as np
import pytest

from gtreex.codec import IntPayloadCodec, dump, dumps, load, loads
from gtreex.core import GTree
from gtreex.diagnostics import dump_free, dump_pool_graphviz


def _payloads(tree, node_id):
    return [tree.payload_of(child) for child in tree.children(node_id)]


def test_sibling_append_then_delete_last_child():
    tree = GTree(1000, capacity=8)
    root = tree.root
    c1 = tree.add_child(root, 1100)
    c2 = tree.add_child(root, 1200)
    c3 = tree.add_child(root, 1300)
    c4 = tree.add_child(root, 1400)
    c5 = tree.add_sibling(c1, 1500)

    assert list(tree.children(root)) == [c1, c2, c3, c4, c5]
    assert tree.parent_of(c5) == root

    assert tree.del_child(root, 4) == 1500
    assert list(tree.children(root)) == [c1, c2, c3, c4]
    assert _payloads(tree, root) == [1100, 1200, 1300, 1400]
    assert tree.child_count(root) == 4
    tree.validate()


def _fill_reference_tree() -> GTree:
    tree = GTree(1000, capacity=16)
    root = tree.root
    c1 = tree.add_child(root, 1100)
    for value in (1200, 1300, 1400):
        tree.add_child(root, value)
    c5 = tree.add_sibling(c1, 1500)
    g1 = tree.add_child(c5, 2100)
    tree.add_child(c5, 2200)
    tree.add_child(c5, 2300)
    tree.add_child(g1, 3100)
    g12 = tree.add_child(g1, 3200)
    tree.add_child(g12, 4100)
    return tree


EXPECTED_AFTER_DELETE = (
    1000,
    [
        (1100, []),
        (1200, []),
        (1300, []),
        (1400, []),
        (2100, [(3100, []), (3200, [(4100, [])])]),
        (2200, []),
        (2300, []),
    ],
)


def test_fill_delete_store_restore(tmp_path):
    tree = _fill_reference_tree()
    assert len(tree) == 12

    tree.del_child(tree.root, 4)

    assert tree.to_nested() == EXPECTED_AFTER_DELETE
    assert len(tree) == 11
    tree.validate()

    path = tmp_path / "store.gtree"
    dump(tree, path, IntPayloadCodec())
    restored = load(path, IntPayloadCodec())

    assert restored.to_nested() == EXPECTED_AFTER_DELETE
    assert dumps(restored, IntPayloadCodec()) == path.read_text(encoding="utf-8")
    restored.validate()

    graph = io.StringIO()
    dump_pool_graphviz(restored, graph, IntPayloadCodec())
    assert graph.getvalue().count("[style=dotted]") == 7
    free = io.StringIO()
    dump_free(tree.pool, free)
    assert free.getvalue().startswith(f"free slots: {tree.pool.capacity - 11} of")


def test_round_trip_preserves_order_and_payloads():
    tree = _fill_reference_tree()
    text = dumps(tree, IntPayloadCodec())
    restored = loads(text, IntPayloadCodec())
    assert restored.to_nested() == tree.to_nested()
    assert dumps(restored, IntPayloadCodec()) == text


@pytest.mark.parametrize("seed", [179, 0, 7])
def test_massive_random_filling(seed):
    rng = np.random.default_rng(seed)
    tree = GTree(0xFAFAFAFA)
    created = [tree.root]

    for i in range(1, 1000):
        value = int(rng.integers(0, 2**31))
        if i > 1 and int(rng.integers(0, 3)) == 1:
            anchor = created[int(rng.integers(1, len(created)))]
            created.append(tree.add_sibling(anchor, value))
        else:
            anchor = created[int(rng.integers(0, len(created)))]
            created.append(tree.add_child(anchor, value))

    assert len(tree) == 1000
    tree.validate()
    assert tree.subtree_size(tree.root) == 1000

    restored = loads(dumps(tree, IntPayloadCodec()), IntPayloadCodec())
    assert restored.to_nested() == tree.to_nested()

    for node_id in created[1:200]:
        if tree.is_valid(node_id) and node_id != tree.root:
            tree.del_subtree(node_id)
    tree.validate()
    tree.clear()
    assert len(tree) == 1
    tree.validate()
