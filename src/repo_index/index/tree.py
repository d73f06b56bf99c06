"""Navigation tree derived from the sorted node list."""

from __future__ import annotations

from collections.abc import Iterable

from repo_index.index.models import TreeNode


def build_tree(nodes: Iterable[str], root_name: str) -> TreeNode:
    """Build a directory/file trie in input order without touching the filesystem."""
    root = TreeNode(name=root_name, kind="directory", children=[])
    directories: dict[str, TreeNode] = {"": root}
    for path in nodes:
        parts = [part for part in path.split("/") if part]
        if not parts:
            continue
        parent = root
        prefix = ""
        for part in parts[:-1]:
            prefix = f"{prefix}/{part}" if prefix else part
            directory = directories.get(prefix)
            if directory is None:
                directory = TreeNode(name=part, kind="directory", children=[])
                _children(parent).append(directory)
                directories[prefix] = directory
            parent = directory
        _children(parent).append(TreeNode(name=parts[-1], kind="file"))
    return root


def files_from_tree(root: TreeNode) -> list[str]:
    """Return file paths below the root, relative to it, in tree order."""
    output: list[str] = []
    stack: list[tuple[TreeNode, str]] = [
        (child, "") for child in reversed(root.children or [])
    ]
    while stack:
        node, prefix = stack.pop()
        path = f"{prefix}/{node.name}" if prefix else node.name
        if node.kind == "file":
            output.append(path)
            continue
        stack.extend((child, path) for child in reversed(node.children or []))
    return output


def count_nodes(root: TreeNode) -> tuple[int, int]:
    """Return (directories, files) below the root, the root excluded."""
    directories = 0
    files = 0
    stack = list(root.children or [])
    while stack:
        node = stack.pop()
        if node.kind == "file":
            files += 1
            continue
        directories += 1
        stack.extend(node.children or [])
    return directories, files


def find_node(root: TreeNode, path: str) -> TreeNode | None:
    """Find the node at a relative path; "" returns the root."""
    current = root
    for part in (part for part in path.split("/") if part):
        match = None
        for child in current.children or []:
            if child.name == part:
                match = child
                if child.kind == "directory":
                    break
        if match is None:
            return None
        current = match
    return current


def _children(node: TreeNode) -> list[TreeNode]:
    if node.children is None:
        node.children = []
    return node.children
