"""
Default help and version collaborators.

- render_help(node, message): usage, description, subcommands, positional values,
  flags and global flags of a node, printed to stderr.
- render_version(parser): "<name> — <version>", printed to stdout.

Both read their rendering switches (colorful, fancy) from the root parser of the
node and their palette from __main__.__styles__. A Parser accepts replacements
through its helper=/versioner= keywords.
"""
from collections import defaultdict

from rich.box import ROUNDED
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .utils import *


def _palette():
    return defaultdict(str, {
        # === Head sections ===
        "usage-label": "bold #00E6FF",
        "program-name": "bold #FF4D94",
        "usage-section": "bold #36C5F0",
        "description-section": "italic #A3A3A3",
        "extra-section": "#737373",

        # === Groups / arguments ===
        "group-label": "bold #FFFFFF",
        "argument-description": "#9CA3AF",
        "flag-name": "bold #22C55E",
        "positional-name": "bold #FFD600",
        "metavar": "bold #FFD600",
        "required": "bold #EF4444",
        "current-value": "italic #737373",

        # === Subcommands table ===
        "children-title": "bold #FFFFFF",
        "children-table": "#4B5563",
        "children": "bold #36C5F0",
        "children-description": "#9CA3AF",

        # === Version ===
        "program-version": "bold #00E6FF",

        # === Fancy panel ===
        "panel-title": "bold #FF4D94",
    } | getattr(__import__("__main__"), "__styles__", {}))


def _switches(node, colorful, fancy):
    root = node.root
    return (
        coalesce(colorful, getattr(root, "colorful", True)),
        coalesce(fancy, getattr(root, "fancy", False)),
    )


def render_help(node, message=Unset, /, *, colorful=Unset, fancy=Unset, console=Unset):
    """
    Render help for a subcommand (or parser) to the console.

    Parameters
    - node: Subcommand
      The node whose help is shown; global flags come from its root.
    - message: fault | str | Unset
      Shown above the help, e.g. the usage fault that stopped the parse.
    - colorful / fancy: bool | Unset
      Override the root parser's rendering switches.
    - console: rich Console | Unset
      Defaults to a Console writing to stderr.

    Palette keys
    - usage-label, program-name, usage-section, description-section, extra-section
    - group-label, argument-description, flag-name, positional-name, metavar,
      required, current-value
    - children-title, children-table, children, children-description, panel-title
    """
    console = coalesce(console, Console(stderr=True))
    colorful, fancy = _switches(node, colorful, fancy)
    styles = _palette()
    root = node.root

    def styler(style):
        return styles[style] if colorful else ""

    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if not colorful:
            return Text(str(fragment))
        if isinstance(fragment, Text):
            return fragment.copy()
        return Text(str(fragment), style)

    renders = []
    width = console.width - 4 * fancy

    if message:
        if not isinstance(message, str):
            renders.append(message)
        else:
            renders.append(text(message, styler("required")))
        renders.append(Text(""))

    if node.prepend:
        renders.append(text(node.prepend, styler("extra-section")).append("\n"))

    # usage: route, then placeholders for what this node accepts
    usage = Text()
    usage.append("usage", styler("usage-label")).append(":")
    usage.append(" ")
    usage.append(Text(" ").join(text(step.name, styler("program-name")) for step in node.path))
    if any(not child.hidden for child in node.children):
        usage.append(" ").append(text("<subcommand>", styler("usage-section")))
    for positional in sorted(node.positionals, key=lambda x: x.position):
        placeholder = "<%s>" % positional.name if positional.required else "[%s]" % positional.name
        usage.append(" ").append(text(placeholder, styler("usage-section")))
    usage.append(" ").append(text("[flags]", styler("usage-section")))
    renders.append(usage.append("\n"))

    if node.descr:
        renders.append(text(node.descr, styler("description-section")).append("\n"))

    children = [child for child in node.children if not child.hidden]
    if children:
        table = Table(
            "name", "short", "help",
            title=text("subcommands", styler("children-title")),
            width=int(width * (2 / 3)),
            box=ROUNDED,
            style=styler("children-table"),
            header_style=styler("children-title"),
        )
        for child in children:
            if child.descr:
                help = text(child.descr, styler("children-description"))
            else:
                help = text("run '%s --help' for details" % " ".join(step.name for step in child.path),
                            styler("children-description"))
            table.add_row(text(child.name, styler("children")), text(child.short, styler("children")), help)
        renders.append(table)

    padding = 2
    indent = 24

    def section(label, description):
        line = Text(" " * padding).append(label)
        if description:
            if len(line) >= indent:
                line.append("\n").append(" " * indent)
            else:
                line.append(" " * (indent - len(line)))
            wrapped = description.wrap(console, max(width - indent, 16))
            try:
                line.append(wrapped.pop(0))
            except IndexError:
                pass
            for extra in wrapped:
                line.append("\n").append(" " * indent).append(extra)
        return line

    def flag_lines(flags):
        lines = []
        for flag in flags:
            if flag.hidden:
                continue
            label = Text(", ").join(
                text(("-" if name == flag.short else "--") + name, styler("flag-name")) for name in flag.names
            )
            if not flag.kind.boolean:
                label.append(" ").append(text("<%s>" % flag.kind.value, styler("metavar")))
            description = text(flag.descr, styler("argument-description"))
            if (current := getattr(flag.storage, "value", None)) not in (None, [], ""):
                if description:
                    description.append(" ")
                description.append(text("(current: %s)" % (current,), styler("current-value")))
            lines.append(section(label, description))
        return lines

    groups = []

    positionals = []
    for positional in sorted(node.positionals, key=lambda x: x.position):
        label = text(positional.name, styler("positional-name"))
        label.append(" ").append(text("(%s)" % ordinal(positional.position), styler("metavar")))
        description = text(positional.descr, styler("argument-description"))
        if positional.required:
            description = Text.assemble(text("required", styler("required")), " ", description)
            description.rstrip()
        positionals.append(section(label, description))
    if positionals:
        groups.append(("positional values", positionals))

    flags = flag_lines(node.flags)
    reserved = []
    if getattr(root, "show_help_with_h_flag", True):
        reserved.append(section(
            Text(", ").join((text("-h", styler("flag-name")), text("--help", styler("flag-name")))),
            text("show this help message and exit", styler("argument-description")),
        ))
    if node is root and getattr(root, "show_version_with_v_flag", False) and getattr(root, "version", None):
        reserved.append(section(
            Text(", ").join((text("-v", styler("flag-name")), text("--version", styler("flag-name")))),
            text("show the version and exit", styler("argument-description")),
        ))
    if flags or reserved:
        groups.append(("flags", flags + reserved))

    if node is not root and (shared := flag_lines(root.flags)):
        groups.append(("global flags", shared))

    if groups:
        body = Text("\n" if children else "")
        for index, (label, lines) in enumerate(groups):
            body.append(text(label, styler("group-label"))).append(":").append("\n")
            for line in lines:
                body.append(line).append("\n")
            body.append("\n" * (index < len(groups) - 1))
        renders.append(body)

    if node.append:
        renders.append(text(node.append, styler("extra-section")).append("\n"))

    if isinstance(renders[-1], Text):
        renders[-1].rstrip()
    renderable = Group(*renders)

    if fancy:
        renderable = Panel(
            renderable,
            title=Text.assemble("[", " ", f"{root.name} HELP".upper(), " ", "]", style=styler("panel-title")),
            title_align="left",
        )

    console.print(renderable)


def render_version(parser, /, *, console=Unset):
    """
    Render "<name> — <version>" to the console (stdout by default).
    """
    console = coalesce(console, Console())
    colorful, fancy = _switches(parser, Unset, Unset)
    styles = _palette()

    def style(name):
        return styles[name] if colorful else ""

    renderable = Text(" — ").join((
        Text(str(parser.name), style("program-name")),
        Text(str(parser.version), style("program-version")),
    ))

    if fancy:
        renderable = Panel(
            renderable,
            title=Text.assemble("[", " ", f"{parser.name} VERSION".upper(), " ", "]", style=style("panel-title")),
            title_align="left",
        )

    console.print(renderable)


__all__ = (
    "render_help",
    "render_version",
)
