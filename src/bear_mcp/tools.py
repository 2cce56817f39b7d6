"""
The Bear tool catalog.

Every tool maps its arguments onto one Bear action. Tools in CALLBACK mode
wait for Bear's x-success answer and embed it in the reply; FIRE_AND_FORGET
tools only confirm that macOS accepted the URL.
"""

import enum
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional

from mcp.shared.exceptions import McpError
from mcp.types import INTERNAL_ERROR, INVALID_PARAMS, ErrorData, TextContent, Tool

from . import dispatch
from .config import Settings
from .errors import BearError
from .urls import ParamValue

LOGGER = logging.getLogger(__name__)


class Mode(enum.Enum):
    FIRE_AND_FORGET = "fire-and-forget"
    CALLBACK = "callback"


STRING = "string"
BOOLEAN = "boolean"
ENUM = "enum"


@dataclass(frozen=True)
class Param:
    name: str
    kind: str
    description: str
    choices: tuple[str, ...] = ()

    def schema(self) -> dict[str, Any]:
        if self.kind == ENUM:
            return {"type": "string", "enum": list(self.choices), "description": self.description}
        return {"type": self.kind, "description": self.description}


@dataclass(frozen=True)
class DispatchContext:
    """What a single tool call needs besides its arguments."""

    settings: Settings
    token: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "DispatchContext":
        return cls(settings=settings, token=settings.token)


@dataclass(frozen=True)
class BearTool:
    name: str
    action: str
    description: str
    mode: Mode
    params: tuple[Param, ...]
    message: Callable[[Mapping[str, Any]], str]
    required: tuple[str, ...] = ()
    # where a callback result goes in the reply; None returns it bare
    result_key: Optional[str] = None
    # required fields the ambient token may satisfy stay out of the schema
    schema_optional: tuple[str, ...] = field(default=())

    @property
    def takes_token(self) -> bool:
        return any(p.name == "token" for p in self.params)

    def as_tool(self) -> Tool:
        schema: dict[str, Any] = {
            "type": "object",
            "properties": {p.name: p.schema() for p in self.params},
        }
        required = [r for r in self.required if r not in self.schema_optional]
        if required:
            schema["required"] = required
        return Tool(name=self.name, description=self.description, inputSchema=schema)

    def build_params(self, arguments: Mapping[str, Any]) -> dict[str, ParamValue]:
        """Keep the arguments Bear understands for this action"""
        params: dict[str, ParamValue] = {}
        for p in self.params:
            value = arguments.get(p.name)
            if p.kind == BOOLEAN:
                if value:
                    params[p.name] = True
            elif value is not None and value != "":
                params[p.name] = str(value)
        return params

    def format_result(self, arguments: Mapping[str, Any], data: dict[str, Any]) -> str:
        if self.result_key is None:
            return json.dumps(data, indent=2)
        return json.dumps({"message": self.message(arguments), self.result_key: data}, indent=2)


def invalid_params(message: str) -> McpError:
    return McpError(ErrorData(code=INVALID_PARAMS, message=message))


def validate(tool: BearTool, arguments: Mapping[str, Any]) -> None:
    for name in tool.required:
        value = arguments.get(name)
        if value is None or value == "":
            raise invalid_params(f"{name} is required for {tool.name}")
    for p in tool.params:
        value = arguments.get(p.name)
        if p.kind == ENUM and value not in (None, "") and value not in p.choices:
            raise invalid_params(f"{p.name} must be one of {', '.join(p.choices)}, got {value!r}")


async def invoke(tool: BearTool, arguments: Optional[Mapping[str, Any]], context: DispatchContext) -> list[TextContent]:
    """Run one tool call against Bear and return its content payload"""
    arguments = dict(arguments or {})
    if tool.takes_token and not arguments.get("token") and context.token:
        arguments["token"] = context.token

    validate(tool, arguments)
    params = tool.build_params(arguments)

    try:
        if tool.mode is Mode.CALLBACK:
            data = await dispatch.execute_with_callback(tool.action, params, context.settings)
            text = tool.format_result(arguments, data)
        else:
            await dispatch.execute(tool.action, params, context.settings)
            text = tool.message(arguments)
    except BearError as e:
        LOGGER.warning("%s (%s) failed: %s", tool.name, tool.action, e)
        raise McpError(ErrorData(
            code=INTERNAL_ERROR,
            message=f"Tool execution failed: {tool.name} ({tool.action}): {e}",
        )) from e

    return [TextContent(type="text", text=text)]


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

ADD_MODES = ("append", "prepend", "replace_all", "replace")

ID = Param("id", STRING, "Note unique identifier")
TITLE = Param("title", STRING, "Note title")
SELECTED = Param("selected", STRING, "Selected text in note")
TOKEN = Param("token", STRING, "Bear API token")
SEARCH = Param("search", STRING, "Search term")
SHOW_WINDOW = Param("show_window", BOOLEAN, "Show Bear window")
NEW_WINDOW = Param("new_window", BOOLEAN, "Open in new window")
EDIT = Param("edit", BOOLEAN, "Place cursor in note editor")
PIN = Param("pin", BOOLEAN, "Pin note to top of list")
FLOAT = Param("float", BOOLEAN, "Float note window")
TIMESTAMP = Param("timestamp", BOOLEAN, "Prepend current date and time")
CLIPBOARD = Param("clipboard", BOOLEAN, "Get text from clipboard")
EXCLUDE_TRASHED = Param("exclude_trashed", BOOLEAN, "Exclude trashed notes")
TAGS = Param("tags", STRING, "Comma-separated list of tags")


def _suffix(arguments: Mapping[str, Any], key: str, text: str) -> str:
    value = arguments.get(key)
    return f" {text}: {value}" if value else ""


def _target(arguments: Mapping[str, Any]) -> str:
    if arguments.get("id"):
        return f" with ID: {arguments['id']}"
    return _suffix(arguments, "search", "matching")


def _list_tool(name: str, action: str, description: str, what: str, token: bool = True) -> BearTool:
    params = (SEARCH, TOKEN, SHOW_WINDOW) if token else (SEARCH, SHOW_WINDOW)
    return BearTool(
        name=name,
        action=action,
        description=description,
        mode=Mode.CALLBACK if token else Mode.FIRE_AND_FORGET,
        params=params,
        message=lambda a: f"Retrieved {what}{_suffix(a, 'search', 'matching')}",
        result_key="notes" if token else None,
    )


TOOLS: tuple[BearTool, ...] = (
    BearTool(
        name="bear_open_note",
        action="open-note",
        description="Open a note in Bear by ID or title",
        mode=Mode.CALLBACK,
        params=(
            ID, TITLE,
            Param("header", STRING, "Header inside the note"),
            EXCLUDE_TRASHED,
            Param("new_window", BOOLEAN, "Open in external window (macOS only)"),
            EDIT, SELECTED, PIN, FLOAT, SHOW_WINDOW,
            Param("open_note", BOOLEAN, "Open note after command"),
            Param("search", STRING, "Search term within note"),
        ),
        message=lambda a: "Opened note in Bear",
    ),
    BearTool(
        name="bear_create_note",
        action="create",
        description="Create a new note in Bear",
        mode=Mode.CALLBACK,
        params=(
            TITLE,
            Param("text", STRING, "Note content"),
            TAGS, PIN, TIMESTAMP, CLIPBOARD,
            Param("file", STRING, "File path to add to note"),
            Param("filename", STRING, "Custom filename for attached file"),
            Param("open_note", BOOLEAN, "Open note after creation"),
            NEW_WINDOW, FLOAT, SHOW_WINDOW, EDIT,
            Param("type", STRING, "Note type"),
            Param("url", STRING, "URL to include in note"),
        ),
        message=lambda a: f"Created new note in Bear{_suffix(a, 'title', 'with title')}",
        result_key="note",
    ),
    BearTool(
        name="bear_add_text",
        action="add-text",
        description="Add text to an existing note",
        mode=Mode.FIRE_AND_FORGET,
        params=(
            ID, TITLE,
            Param("text", STRING, "Text to add"),
            Param("mode", ENUM, "How to add the text", ADD_MODES),
            Param("new_line", BOOLEAN, "Force text on new line when appending"),
            Param("header", STRING, "Add text to specific header"),
            SELECTED, CLIPBOARD, EXCLUDE_TRASHED,
            Param("open_note", BOOLEAN, "Open note after adding text"),
            NEW_WINDOW, SHOW_WINDOW, EDIT, TIMESTAMP,
        ),
        message=lambda a: f"Added text to note in Bear{_suffix(a, 'mode', 'using mode')}",
        required=("text",),
    ),
    BearTool(
        name="bear_add_file",
        action="add-file",
        description="Add a file to an existing note",
        mode=Mode.FIRE_AND_FORGET,
        params=(
            ID, TITLE, SELECTED,
            Param("file", STRING, "File path to add"),
            Param("header", STRING, "Add file to specific header"),
            Param("filename", STRING, "Custom filename for the file"),
            Param("mode", ENUM, "How to add the file", ADD_MODES),
            Param("open_note", BOOLEAN, "Open note after adding file"),
            NEW_WINDOW, SHOW_WINDOW, EDIT,
        ),
        message=lambda a: f"Added file to note in Bear{_suffix(a, 'filename', 'with filename')}",
        required=("file",),
    ),
    BearTool(
        name="bear_search",
        action="search",
        description="Search for notes in Bear",
        mode=Mode.CALLBACK,
        params=(
            Param("term", STRING, "Search term"),
            Param("tag", STRING, "Tag to search within"),
            TOKEN, SHOW_WINDOW,
        ),
        message=lambda a: f"Searched Bear for: {a.get('term') or 'all notes'}{_suffix(a, 'tag', 'in tag')}",
        result_key="results",
    ),
    BearTool(
        name="bear_get_tags",
        action="tags",
        description="Get all tags from Bear",
        mode=Mode.CALLBACK,
        params=(Param("token", STRING, "Bear API token (required unless BEAR_TOKEN is set)"),),
        message=lambda a: "Retrieved all tags from Bear",
        required=("token",),
        result_key="tags",
        schema_optional=("token",),
    ),
    BearTool(
        name="bear_open_tag",
        action="open-tag",
        description="Open notes with specific tag(s)",
        mode=Mode.CALLBACK,
        params=(
            Param("name", STRING, "Tag name or comma-separated list of tags"),
            TOKEN, SHOW_WINDOW,
        ),
        message=lambda a: f"Opened notes with tag: {a.get('name')}",
        required=("name",),
        result_key="notes",
    ),
    BearTool(
        name="bear_trash_note",
        action="trash",
        description="Move a note to trash",
        mode=Mode.FIRE_AND_FORGET,
        params=(ID, Param("search", STRING, "Search term to find notes to trash"), SHOW_WINDOW),
        message=lambda a: f"Moved note(s) to trash{_target(a)}",
    ),
    BearTool(
        name="bear_archive_note",
        action="archive",
        description="Archive a note",
        mode=Mode.FIRE_AND_FORGET,
        params=(ID, Param("search", STRING, "Search term to find notes to archive"), SHOW_WINDOW),
        message=lambda a: f"Archived note(s){_target(a)}",
    ),
    _list_tool("bear_get_untagged", "untagged", "Get untagged notes", "untagged notes"),
    _list_tool("bear_get_todo", "todo", "Get todo notes", "todo notes"),
    _list_tool("bear_get_today", "today", "Get today's notes", "today's notes"),
    _list_tool("bear_get_locked", "locked", "Get locked (encrypted) notes", "locked notes", token=False),
    BearTool(
        name="bear_grab_url",
        action="grab-url",
        description="Create a note from web page content",
        mode=Mode.CALLBACK,
        params=(
            Param("url", STRING, "URL to grab content from"),
            TAGS, PIN,
            Param("wait", BOOLEAN, "Wait for content to load"),
        ),
        message=lambda a: f"Created note from URL: {a.get('url')}",
        required=("url",),
        result_key="note",
    ),
    BearTool(
        name="bear_rename_tag",
        action="rename-tag",
        description="Rename an existing tag",
        mode=Mode.FIRE_AND_FORGET,
        params=(
            Param("name", STRING, "Current tag name"),
            Param("new_name", STRING, "New tag name"),
            SHOW_WINDOW,
        ),
        message=lambda a: f'Renamed tag from "{a.get("name")}" to "{a.get("new_name")}"',
        required=("name", "new_name"),
    ),
    BearTool(
        name="bear_delete_tag",
        action="delete-tag",
        description="Delete an existing tag",
        mode=Mode.FIRE_AND_FORGET,
        params=(Param("name", STRING, "Tag name to delete"), SHOW_WINDOW),
        message=lambda a: f"Deleted tag: {a.get('name')}",
        required=("name",),
    ),
)

TOOLS_BY_NAME: dict[str, BearTool] = {tool.name: tool for tool in TOOLS}
