"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO). The caller
extracts the rendered text via ``get_output(console)``.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from opsconsole.domain.expansion import (
    MAIN_DEPARTMENTS,
    REGIONAL_UNITS,
    dept_key,
    section_key,
    unit_key,
)
from opsconsole.output.console import create_console, get_output

if TYPE_CHECKING:
    from rich.console import Console

    from opsconsole.services.result import ServiceResult

_EXPANDED = "▾ "
_COLLAPSED = "▸ "


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal,
    which is the case inside Click's CliRunner and piped output.
    """
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
        if verbose:
            _render_meta(console, result)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} — {msg}"

    items = result.data.get("items") or result.data.get("properties")
    if items and isinstance(items, list):
        ids = (_extract_id(item) for item in items)
        return "\n".join(i for i in ids if i)

    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _extract_id(item: Any) -> str:
    if not isinstance(item, dict):
        return ""
    for nested in ("account", "property"):
        if isinstance(item.get(nested), dict):
            return str(item[nested].get("id", ""))
    val = item.get("id")
    return str(val) if val is not None else ""


def _status_line(console: Console, result: ServiceResult) -> None:
    label = Text("OK", style="ops.ok")
    op = Text(f"  {result.op}", style="ops.op")
    console.print(label, op, end="")
    console.print()


def _field(console: Console, key: str, value: Any) -> None:
    line = Text()
    line.append(f"  {key}: ", style="ops.key")
    if key == "id" or key.endswith("_id"):
        v = Text(str(value), style="ops.id")
    elif key == "slug":
        v = Text(str(value), style="ops.slug")
    else:
        v = Text("" if value is None else str(value))
    line.append_text(v)
    console.print(line)


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print degradations and the telemetry span tree (verbose only)."""
    if not result.meta:
        return

    console.print()
    console.print(Text("  meta:", style="dim"))
    for k, v in result.meta.items():
        if k == "telemetry":
            _render_telemetry_tree(console, v, indent=4)
        elif k == "degraded":
            for note in v:
                console.print(Text(f"    degraded: {note}", style="ops.warning"))
        else:
            console.print(Text(f"    {k}: {v}"))


def _render_telemetry_tree(console: Console, span_data: dict[str, Any], indent: int = 4) -> None:
    prefix = " " * indent
    name = span_data.get("name", "?")
    duration = span_data.get("duration_ms", 0.0)

    if duration > 1000:
        style = "bold red"
    elif duration > 100:
        style = "yellow"
    else:
        style = "dim"

    line = f"{prefix}[{style}]{duration:>8.2f}ms[/{style}]  {name}"
    annotations = span_data.get("annotations") or {}
    if annotations:
        line += "  (" + ", ".join(f"{k}={v}" for k, v in annotations.items()) + ")"
    console.print(line)

    for child in span_data.get("children", []):
        _render_telemetry_tree(console, child, indent=indent + 4)


def _contact_name(contact: dict[str, Any] | None) -> str:
    if not contact:
        return "—"
    return contact.get("full_name") or contact.get("id", "")


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="ops.error")
    op = Text(f"  {result.op}", style="ops.op")
    sep = Text(" — ")
    console.print(label, op, sep, Text(msg))

    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(Text(f"    {k}: {v}"))


# ── Unit renderers ────────────────────────────────────────────────────


def _render_units(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("ID", style="ops.id", no_wrap=True)
    table.add_column("Name", style="ops.unit")
    table.add_column("Slug", style="ops.slug")
    table.add_column("Parent")
    table.add_column("Group")
    for item in result.data.get("items", []):
        table.add_row(
            str(item.get("id", "")),
            str(item.get("name", "")),
            str(item.get("slug", "")),
            str(item.get("parent_id") or ""),
            "yes" if item.get("is_group_root") else "",
        )
    console.print(table)
    for slug in result.data.get("collisions", []):
        console.print(Text(f"  slug collision: {slug}", style="ops.warning"))


def _render_unit(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    for key in ("id", "name", "slug", "type_id", "parent_id", "is_group_root", "tree_cached"):
        if key in result.data:
            _field(console, key, result.data[key])


def _render_tree(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render the sidebar the way the current expansion state shows it."""
    _status_line(console, result)
    tree_data = result.data.get("tree", {})
    expansion: dict[str, bool] = result.data.get("expansion", {})
    unit = tree_data.get("unit", {})

    root = Tree(Text(f"{unit.get('name', '?')}  ({unit.get('slug', '')})", style="ops.group"))

    main_key = section_key(MAIN_DEPARTMENTS)
    main = root.add(_toggle_label("Departments", expansion.get(main_key, False)))
    if expansion.get(main_key, False):
        _add_departments(main, tree_data.get("departments", []), expansion, unit_id=None)

    children = tree_data.get("children", [])
    if tree_data.get("is_group_root") and children:
        regional_key = section_key(REGIONAL_UNITS)
        regional = root.add(_toggle_label("Regional units", expansion.get(regional_key, False)))
        if expansion.get(regional_key, False):
            for child in children:
                child_unit = child.get("unit", {})
                open_ = expansion.get(unit_key(child_unit.get("id", "")), False)
                branch = regional.add(_toggle_label(child_unit.get("name", "?"), open_))
                if open_:
                    _add_departments(
                        branch,
                        child.get("departments", []),
                        expansion,
                        unit_id=child_unit.get("id"),
                    )

    console.print(root)


def _toggle_label(name: str, expanded: bool) -> Text:
    return Text((_EXPANDED if expanded else _COLLAPSED) + name, style="ops.unit")


def _add_departments(
    parent: Tree,
    departments: list[dict[str, Any]],
    expansion: dict[str, bool],
    *,
    unit_id: str | None,
) -> None:
    for node in departments:
        dept = node.get("department", {})
        pages = node.get("pages", [])
        if not pages:
            parent.add(Text(f"  {dept.get('name', '?')}", style="ops.dept"))
            continue
        open_ = expansion.get(dept_key(dept.get("id", ""), unit_id=unit_id), False)
        branch = parent.add(
            Text((_EXPANDED if open_ else _COLLAPSED) + dept.get("name", "?"), style="ops.dept")
        )
        if open_:
            for page in pages:
                label = Text(page.get("name", "?"), style="ops.page")
                label.append(f"  {page.get('path', '')}", style="ops.path")
                branch.add(label)


def _render_navigation(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    _field(console, "home", result.data.get("home"))
    for step in result.data.get("steps", []):
        if step.get("resolved"):
            cached = "tree cached" if step.get("tree_cached") else "no tree"
            line = Text(f"  → {step['slug']}: {step.get('name')} ")
            line.append(str(step.get("unit_id")), style="ops.id")
            line.append(f" ({cached})")
            console.print(line)
        else:
            console.print(Text(f"  → {step['slug']}: not found", style="ops.warning"))
    _field(console, "current_id", result.data.get("current"))
    _field(console, "tree_loads", result.data.get("tree_loads"))


# ── Client renderers ──────────────────────────────────────────────────


def _equipment_table(equipment: list[dict[str, Any]]) -> Table:
    table = Table(show_header=True, pad_edge=False, expand=False, box=None)
    table.add_column("Tank", style="ops.unit")
    table.add_column("Type")
    table.add_column("Capacity (L)", justify="right")
    table.add_column("Installed")
    table.add_column("Next service")
    for view in equipment:
        unit = view.get("unit", {})
        kind = view.get("type") or {}
        table.add_row(
            str(unit.get("name", "")),
            str(kind.get("name", "—")),
            str(unit.get("capacity_litres") or ""),
            str(unit.get("installation_date") or ""),
            str(unit.get("next_service_date") or ""),
        )
    return table


def _render_client(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    account = result.data.get("account", {})
    _field(console, "account_id", account.get("id"))
    _field(console, "type", account.get("account_type"))
    _field(console, "holder", _contact_name(result.data.get("contact")))
    _field(console, "billing", account.get("billing_address"))
    _field(console, "payment_terms_days", account.get("payment_terms_days"))
    if verbose:
        _field(console, "credit_limit", account.get("credit_limit"))

    properties = result.data.get("properties", [])
    _field(console, "properties", len(properties))
    _field(console, "equipment", result.data.get("equipment_count", 0))
    for view in properties:
        prop = view.get("property", {})
        equipment = view.get("equipment", [])
        console.print()
        console.print(
            Text(f"  {prop.get('address', '')}, {prop.get('postcode', '')}", style="ops.unit"),
            Text(f"  [{prop.get('id', '')}]", style="ops.id"),
        )
        if equipment:
            console.print(_equipment_table(equipment))
        else:
            console.print(Text("    no tanks", style="dim"))


def _render_client_list(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Account", style="ops.id", no_wrap=True)
    table.add_column("Holder", style="ops.unit")
    table.add_column("Type")
    table.add_column("Billing address")
    table.add_column("Active")
    for item in result.data.get("items", []):
        account = item.get("account", {})
        table.add_row(
            str(account.get("id", "")),
            _contact_name(item.get("contact")),
            str(account.get("account_type", "")),
            str(account.get("billing_address") or ""),
            "yes" if account.get("is_active") else "no",
        )
    console.print(table)


def _render_property(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    prop = result.data.get("property", {})
    for key in ("id", "address", "postcode", "city", "property_type", "access_notes"):
        _field(console, key, prop.get(key))
    account = result.data.get("account") or {}
    _field(console, "account_id", account.get("id"))
    _field(console, "holder", _contact_name(result.data.get("contact")))
    equipment = result.data.get("equipment", [])
    if equipment:
        console.print(_equipment_table(equipment))


def _render_init(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    _field(console, "url", result.data.get("url"))
    _field(console, "tables", len(result.data.get("tables", [])))


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    for key, value in result.data.items():
        _field(console, key, value)


_OP_RENDERERS = {
    "list_units": _render_units,
    "resolve_unit": _render_unit,
    "unit_tree": _render_tree,
    "navigate": _render_navigation,
    "client_detail": _render_client,
    "client_list": _render_client_list,
    "property_detail": _render_property,
    "init_schema": _render_init,
}
