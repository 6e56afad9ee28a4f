'''planning_dashboard/data/hierarchy.py'''
import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

import pandas as pd

from planning_dashboard.utils.constants import NO_LOCATION, UNCATEGORIZED, UNSUBCATEGORIZED

logger = logging.getLogger(__name__)

BRANCH_TYPES = ("category", "subcategory")
LEAF_TYPES = ("product", "location")


class NodeNotFoundError(KeyError):
    pass


@dataclass(frozen=True)
class TreeNode:
    id: str
    name: str
    type: str                              # category | subcategory | product | location
    children: Tuple["TreeNode", ...] = ()
    item_id: Optional[str] = None          # product_id / location_id on leaves

    @property
    def is_leaf(self) -> bool:
        return self.type in LEAF_TYPES

    def to_dict(self) -> Dict[str, Any]:
        if self.is_leaf:
            return {"id": self.id, "name": self.name, "type": self.type, f"{self.type}_id": self.item_id}
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "children": [child.to_dict() for child in self.children],
        }


def _text(value) -> Optional[str]:
    """Normalise an id/name from the backend; None, NaN and blanks become None."""
    if value is None:
        return None
    if isinstance(value, float) and pd.isna(value):
        return None
    value = str(value).strip()
    return value or None


def _product_keys(product: Dict[str, Any]) -> Dict[str, Any]:
    category_name = _text(product.get("category_name"))
    category_key = _text(product.get("category_id")) or category_name or UNCATEGORIZED
    subcategory_name = _text(product.get("subcategory_name"))
    subcategory_part = _text(product.get("subcategory_id")) or subcategory_name or UNSUBCATEGORIZED
    product_id = _text(product.get("product_id"))
    return {
        "cat_key": category_key,
        "cat_name": category_name or UNCATEGORIZED,
        "sub_key": f"{category_key}-{subcategory_part}",
        "sub_name": subcategory_name or UNSUBCATEGORIZED,
        "product_id": product_id,
        "product_name": _text(product.get("product_name")) or product_id,
    }


def _keyed_frame(items: Iterable[Dict[str, Any]], keyer, id_col: str) -> pd.DataFrame:
    records = [keyer(item) for item in items or [] if isinstance(item, dict)]
    df = pd.DataFrame.from_records(records)
    if df.empty:
        return df
    missing = df[id_col].isna()
    if missing.any():
        logger.warning(f"Skipping {int(missing.sum())} rows without {id_col}")
    return df[~missing]


def build_category_tree(products: Iterable[Dict[str, Any]]) -> Tuple[TreeNode, ...]:
    """
    Build the category -> subcategory -> product tree for the product picker.

    Categories are keyed by category_id, falling back to category_name and
    then to the "Sin Categoría" sentinel. Subcategories are keyed by their
    parent's key plus their own id/name, so the same subcategory name under
    two categories gives two nodes. Nodes keep the order in which their key
    first appears in the input.
    """
    df = _keyed_frame(products, _product_keys, "product_id")
    if df.empty:
        return ()

    return tuple(
        TreeNode(
            id=cat_key,
            name=cat_rows["cat_name"].iloc[0],
            type="category",
            children=tuple(
                TreeNode(
                    id=sub_key,
                    name=sub_rows["sub_name"].iloc[0],
                    type="subcategory",
                    children=tuple(
                        TreeNode(id=pid, name=pname, type="product", item_id=pid)
                        for pid, pname in zip(sub_rows["product_id"], sub_rows["product_name"])
                    ),
                )
                for sub_key, sub_rows in cat_rows.groupby("sub_key", sort=False)
            ),
        )
        for cat_key, cat_rows in df.groupby("cat_key", sort=False)
    )


def _location_keys(location: Dict[str, Any]) -> Dict[str, Any]:
    level_1 = _text(location.get("level_1"))
    location_id = _text(location.get("location_id"))
    return {
        "level_key": level_1 or NO_LOCATION,
        "location_id": location_id,
        "location_name": _text(location.get("location_name")) or location_id,
    }


def build_location_tree(locations: Iterable[Dict[str, Any]]) -> Tuple[TreeNode, ...]:
    """Group locations under their level_1 region ("Sin Localidad" when missing)."""
    df = _keyed_frame(locations, _location_keys, "location_id")
    if df.empty:
        return ()

    return tuple(
        TreeNode(
            id=level_key,
            name=level_key,
            type="category",
            children=tuple(
                TreeNode(id=lid, name=lname, type="location", item_id=lid)
                for lid, lname in zip(rows["location_id"], rows["location_name"])
            ),
        )
        for level_key, rows in df.groupby("level_key", sort=False)
    )


def iter_nodes(nodes: Iterable[TreeNode]) -> Iterator[TreeNode]:
    """Depth-first, pre-order."""
    for node in nodes:
        yield node
        yield from iter_nodes(node.children)


def collect_ids(node: TreeNode) -> List[str]:
    """Every leaf id beneath `node`, depth-first. A leaf returns its own id."""
    if node.is_leaf:
        return [node.item_id] if node.item_id else []
    return [leaf.item_id for leaf in iter_nodes(node.children) if leaf.is_leaf and leaf.item_id]


def find_node(tree: Iterable[TreeNode], node_id: str, node_type: Optional[str] = None) -> TreeNode:
    for node in iter_nodes(tree):
        if node.id == node_id and (node_type is None or node.type == node_type):
            return node
    raise NodeNotFoundError(node_id)


def resolve_selection(tree: Iterable[TreeNode], node_id: str, node_type: Optional[str] = None) -> Dict[str, Any]:
    """The {ids, name, type} payload a picker emits when a node is selected."""
    node = find_node(tree, node_id, node_type)
    return {"ids": collect_ids(node), "name": node.name, "type": node.type}


def _filter_node(node: TreeNode, term: str) -> Optional[TreeNode]:
    if term in node.name.lower():
        return node
    kept = tuple(c for c in (_filter_node(child, term) for child in node.children) if c is not None)
    if kept:
        return replace(node, children=kept)
    return None


def filter_tree(tree: Iterable[TreeNode], term: Optional[str]) -> Tuple[TreeNode, ...]:
    """
    Case-insensitive name search. A node survives if its own name matches
    (keeping its whole subtree) or if any descendant matches.
    """
    tree = tuple(tree)
    term = (term or "").strip().lower()
    if not term:
        return tree
    return tuple(n for n in (_filter_node(node, term) for node in tree) if n is not None)
