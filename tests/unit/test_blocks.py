import pytest

from canvasletter.domain.blocks import (
    BlockTree,
    children_of,
    classify,
    find_cycles,
    find_dangling_references,
    find_duplicate_ids,
    is_container,
    is_image,
    is_shape,
    is_text,
    make_container_block,
    make_image_block,
    make_shape_block,
    make_text_block,
    next_z_index,
    paint_order,
    validate_structure,
)
from canvasletter.domain.entities import (
    ContainerBlock,
    ImageBlock,
    Position,
    ShapeBlock,
    TextBlock,
)
from canvasletter.domain.errors import UnknownBlockTypeError


def text(block_id: str, z: int = 1) -> TextBlock:
    return TextBlock(id=block_id, content=block_id, z_index=z)


def container(block_id: str, children: list[str], z: int = 1) -> ContainerBlock:
    return ContainerBlock(id=block_id, children=children, z_index=z)


# --- Classification ---


def test_classify_each_variant():
    assert classify(text("T")) == "text"
    assert classify(ImageBlock(id="I", src="a.png")) == "image"
    assert classify(ShapeBlock(id="S")) == "shape"
    assert classify(container("C", [])) == "container"
    assert classify({"id": "R", "type": "container"}) == "container"


def test_classify_unknown_tag_raises():
    with pytest.raises(UnknownBlockTypeError) as exc:
        classify({"id": "V1", "type": "video"})
    assert exc.value.block_type == "video"
    assert exc.value.block_id == "V1"


def test_predicates_are_exclusive():
    blocks = [text("T"), ImageBlock(id="I", src="a.png"), ShapeBlock(id="S"), container("C", [])]
    predicates = [is_text, is_image, is_shape, is_container]
    for block in blocks:
        assert sum(1 for p in predicates if p(block)) == 1


def test_children_of_non_container_is_empty():
    assert children_of(text("T")) == ()
    assert children_of(container("C", ["A", "B"])) == ("A", "B")


# --- zIndex ---


def test_next_z_index_empty():
    assert next_z_index([]) == 1


def test_next_z_index_is_max_plus_one():
    assert next_z_index([{"zIndex": 3}, {"zIndex": 1}]) == 4
    assert next_z_index([text("A", 2), text("B", 7)]) == 8


def test_next_z_index_ignores_non_integer_records():
    assert next_z_index([{"zIndex": "high"}, {}]) == 2


def test_paint_order_keeps_ties_in_appearance_order():
    blocks = [text("A", 2), text("B", 1), text("C", 2), text("D", 1)]
    assert [b.id for b in paint_order(blocks)] == ["B", "D", "A", "C"]


# --- Tree ---


class TestBlockTree:
    def test_lookup_and_children(self):
        tree = BlockTree([container("C", ["A", "missing", "B"]), text("A"), text("B")])

        assert "A" in tree
        assert len(tree) == 3
        assert [b.id for b in tree.children("C")] == ["A", "B"]
        assert tree.child_ids("C") == ("A", "missing", "B")

    def test_parents(self):
        tree = BlockTree([container("C", ["A"]), container("D", ["A"]), text("A"), text("Z")])

        assert tree.parents_of("A") == ["C", "D"]
        assert tree.parents_of("Z") == []

    def test_duplicates_keep_first(self):
        first = text("A", 1)
        tree = BlockTree([first, text("A", 5)])

        assert tree.get("A") is first
        assert tree.duplicate_ids == ["A"]


# --- Structural invariants ---


class TestStructuralChecks:
    def test_well_formed_tree_has_no_issues(self):
        blocks = [container("C", ["A", "D"]), text("A"), container("D", ["B"]), text("B")]
        assert validate_structure(blocks) == []

    def test_dangling_reference(self):
        issues = find_dangling_references([container("C", ["ghost"])])
        assert [(i.code, i.block_id) for i in issues] == [("dangling_reference", "C")]

    def test_self_reference_is_a_cycle(self):
        issues = find_cycles([container("C", ["C"])])
        assert [i.code for i in issues] == ["cycle"]

    def test_two_node_cycle(self):
        issues = find_cycles([container("A", ["B"]), container("B", ["A"])])
        assert issues
        assert all(i.code == "cycle" for i in issues)

    def test_shared_child_is_not_a_cycle(self):
        blocks = [container("A", ["S"]), container("B", ["S"]), text("S")]
        assert find_cycles(blocks) == []

    def test_deep_chain_does_not_exhaust_stack(self):
        depth = 5000
        blocks = [container(f"N{i}", [f"N{i + 1}"]) for i in range(depth)]
        blocks.append(text(f"N{depth}"))
        assert find_cycles(blocks) == []

    def test_duplicate_ids_reported_once(self):
        issues = find_duplicate_ids([text("A"), text("A"), text("A")])
        assert [(i.code, i.block_id) for i in issues] == [("duplicate_id", "A")]

    def test_block_limit(self):
        issues = validate_structure([text("A"), text("B"), text("C")], max_blocks=2)
        assert [i.code for i in issues] == ["too_many_blocks"]


# --- Factories ---


class TestFactories:
    def test_text_block_defaults(self):
        block = make_text_block(existing=[text("A", 3)])

        assert block.content == "Text"
        assert block.z_index == 4
        assert (block.size.width, block.size.height) == (200, 100)
        assert block.styles.font_size == 16
        assert block.id.startswith("block-")

    def test_image_block_defaults(self):
        block = make_image_block("https://example.com/x.png", position=Position(x=5, y=6))

        assert block.src == "https://example.com/x.png"
        assert block.alt == "Image"
        assert block.position == Position(x=5, y=6)
        assert block.styles.object_fit == "cover"
        assert block.z_index == 1

    def test_shape_and_container_defaults(self):
        shape = make_shape_block()
        box = make_container_block(children=["A"], existing=[shape])

        assert shape.shape_type == "rectangle"
        assert shape.styles.background_color == "#e5e7eb"
        assert box.children == ["A"]
        assert box.z_index == 2
        assert (box.size.width, box.size.height) == (500, 500)

    def test_ids_are_unique(self):
        assert make_text_block().id != make_text_block().id
