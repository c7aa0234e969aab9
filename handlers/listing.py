"""HTML rendering for directory listings."""

from __future__ import annotations

import html
import os
import posixpath
from pathlib import Path
from urllib.parse import quote

from config import ServerConfig

BACK_ICON = (
    "data:image/png;base64,iVBORw0KGgoAAAANSUhEUgAAABAAAAAQCAYAAAAf8/9hAAAAUElEQVR42mNgoAP4"
    "jwMTp3l+AXaMbsh/fJiQIf8fzMWPcRlCtAEwQ3CFBUFNBOSJs5EkA3A5lygDCMUIXgMIaUY3hHZhMDgMICFx"
    "ER942DAAVeyEg1KZUZsAAAAASUVORK5CYII="
)
FOLDER_ICON = (
    "data:image/png;base64,iVBORw0KGgoAAAANSUhEUgAAABAAAAAQCAYAAAAf8/9hAAAAOklEQVR42mNgoAP4"
    "jwMTp3l+AXaMbsh/fJiQIf8fzMWPcRlCtAEwQ3CFBVEG4DF01IBRA/4TzAeEMAD1u8MF0hnk0QAAAABJRU5E"
    "rkJggg=="
)
FILE_ICON = (
    "data:image/png;base64,iVBORw0KGgoAAAANSUhEUgAAABAAAAAQAgMAAABinRfyAAAACVBMVEUAAAAAAAD/"
    "//+D3c/SAAAAAXRSTlMAQObYZgAAAEBJREFUCNdjYAAB0dAABgapVVMYGCRnRoJYsxwYJCOjJgBZU0MYJMPC"
    "UoCsVUsYJKdOhbFSU2GssFAoSzQ0NAQADkYWX7FoSfoAAAAASUVORK5CYII="
)

def _link(href: str, label: str, icon: str) -> str:
    return f'<a href="{html.escape(href)}"><img src="{icon}" alt=""> {html.escape(label)}</a><br>\n'


def _directory_url(directory: Path, root: Path) -> str:
    parts = directory.relative_to(root).parts
    if not parts:
        return "/"
    return "/" + "/".join(quote(part, safe="") for part in parts) + "/"


def _relative_href(target_url: str, base_url: str) -> str:
    href = posixpath.relpath(target_url, base_url)
    if target_url.endswith("/"):
        return "./" if href == "." else href + "/"
    return href


def render_directory_listing(directory: Path, config: ServerConfig, request_path: str) -> str:
    """Render the immediate children of ``directory`` as relative links.

    Hrefs are computed from the canonical URL of each target against the base
    a client resolves relative links with: the request path up to its last
    ``/``. They stay correct for paths like ``/docs`` or ``/docs/nested/..``.
    """
    root = config.root_directory
    base_url = request_path[: request_path.rfind("/") + 1] or "/"
    directory_url = _directory_url(directory, root)

    subdirectories: list[str] = []
    files: list[str] = []
    with os.scandir(directory) as entries:
        for entry in entries:
            if entry.is_dir():
                subdirectories.append(entry.name)
            else:
                files.append(entry.name)

    title = html.escape(f"Index of {request_path}")
    parts = [
        "<!DOCTYPE html>\n",
        f"<html><head><meta charset=\"utf-8\"><title>{title}</title></head><body>\n",
    ]
    if directory != root:
        parent_url = _directory_url(directory.parent, root)
        parts.append(_link(_relative_href(parent_url, base_url), "Back", BACK_ICON))
    parts.append("<p>\n")
    for name in subdirectories:
        child_url = f"{directory_url}{quote(name, safe='')}/"
        parts.append(_link(_relative_href(child_url, base_url), f"{name}/", FOLDER_ICON))
    parts.append("<p>\n")
    for name in files:
        child_url = f"{directory_url}{quote(name, safe='')}"
        parts.append(_link(_relative_href(child_url, base_url), name, FILE_ICON))
    parts.append("</body></html>\n")
    return "".join(parts)
