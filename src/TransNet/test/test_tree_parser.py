from io import StringIO
import pytest
from Bio import Phylo
from TransNet.TreeParser import (PhyloTree, TreeParser, TreeParserError,
                                 from_biopython, read_tree)


NEXUS = """#NEXUS
BEGIN TAXA;
    DIMENSIONS NTAX=4;
    TAXLABELS t1 t2 t3 t4;
END;
BEGIN TREES;
    tree first = ((t1:1,t2:1):1,(t3:1,t4:1):1);
    tree second = (t4:1,(t3:1,(t2:1,t1:1):1):1);
END;
"""


def newick(text : str) -> PhyloTree:
    return from_biopython(Phylo.read(StringIO(text), "newick"))


def test_leaves_first_then_root_then_preorder():
    tree = newick("((t1,t2),(t3,t4));")

    assert tree.tip_labels == ("t1", "t2", "t3", "t4")
    assert tree.num_leaves() == 4
    assert tree.num_internal == 3
    assert tree.root() == 4
    assert set(tree.edges) == {(4, 5), (4, 6), (5, 0), (5, 1), (6, 2), (6, 3)}


def test_every_node_but_the_root_has_one_parent():
    tree = newick("(a,(b,(c,d)),e);")
    children = [child for _, child in tree.edges]

    assert len(tree.edges) == tree.num_nodes() - 1
    assert sorted(children) == [node for node in range(tree.num_nodes())
                                if node != tree.root()]


def test_preorder_visits_parents_first():
    tree = newick("((t1,t2),(t3,t4));")
    order = tree.preorder()
    position = {node : index for index, node in enumerate(order)}

    assert order[0] == tree.root()
    for parent, child in tree.edges:
        assert position[parent] < position[child]


def test_validate_rejects_two_parents():
    tree = PhyloTree(((2, 0), (2, 1), (0, 1)), ("a", "b"), 1)
    with pytest.raises(TreeParserError):
        tree.validate()


def test_validate_rejects_disconnected_nodes():
    tree = PhyloTree(((2, 0),), ("a", "b"), 1)
    with pytest.raises(TreeParserError):
        tree.validate()


def test_unnamed_leaf():
    with pytest.raises(TreeParserError):
        newick("((t1,),(t3,t4));")


def test_tree_parser_reads_every_tree(tmp_path):
    path = tmp_path / "trees.nex"
    path.write_text(NEXUS, encoding = "utf-8")
    parser = TreeParser(str(path))

    assert len(parser.get_all_trees()) == 2
    assert parser.names == ["first", "second"]
    assert parser.get_tree(1).tip_labels == ("t4", "t3", "t2", "t1")
    assert read_tree(str(path)).num_internal == 3


def test_tree_index_out_of_range(tmp_path):
    path = tmp_path / "trees.nex"
    path.write_text(NEXUS, encoding = "utf-8")
    with pytest.raises(TreeParserError):
        read_tree(str(path), 5)


def test_file_without_trees(tmp_path):
    path = tmp_path / "empty.nex"
    path.write_text("#NEXUS\nBEGIN TAXA;\nEND;\n", encoding = "utf-8")
    with pytest.raises(TreeParserError):
        TreeParser(str(path))


TRANSLATED = """#NEXUS
BEGIN TREES;
    TRANSLATE {table};
    tree T = ((1:1,2:1):1,(3:1,4:1):1);
END;
"""


@pytest.mark.parametrize("table", [
    "1 t1, 2 t2, 3 t3, 4 t4",
    "\n        1 t1,\n        2 t2,\n        3 t3,\n        4 t4\n   ",
])
def test_translate_table_is_resolved(tmp_path, table):
    path = tmp_path / "translated.nex"
    path.write_text(TRANSLATED.format(table = table), encoding = "utf-8")

    tree = read_tree(str(path))
    assert tree.tip_labels == ("t1", "t2", "t3", "t4")


def test_malformed_translate_entry(tmp_path):
    path = tmp_path / "translated.nex"
    path.write_text(TRANSLATED.format(table = "1 t1, 2, 3 t3, 4 t4"),
                    encoding = "utf-8")
    with pytest.raises(TreeParserError):
        TreeParser(str(path))
