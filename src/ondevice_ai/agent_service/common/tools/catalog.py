# static tool catalog: memory, calendar, system and utility tools

import math
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from ondevice_ai.agent_service.common.tools.base import ToolDescriptor, parse_tool_args, require_arg
from ondevice_ai.agent_service.common.tools.calendar import CalendarProvider
from ondevice_ai.common.exceptions import EmptyInputError, ToolError
from ondevice_ai.common.logging.logger import logger
from ondevice_ai.memory.memory_service import MemoryService

Clock = Callable[[], datetime]

def _utc_now() -> datetime:
    return datetime.now(timezone.utc)

# =====================================================================
# Parameter declarations
# =====================================================================

ADD_MEMORY_PARAMETERS = {
    "type": "object",
    "properties": {
        "content": {"type": "string", "description": "The information to store in memory"},
        "metadata": {"type": "object", "description": "Optional metadata to associate with the memory (tags, category, etc.)"},
    },
    "required": ["content"],
}

SEARCH_MEMORY_PARAMETERS = {
    "type": "object",
    "properties": {
        "query": {"type": "string", "description": "The search query to find relevant memories"},
        "limit": {"type": "integer", "description": "Maximum number of results to return (default: 5)"},
    },
    "required": ["query"],
}

GET_CALENDAR_EVENTS_PARAMETERS = {
    "type": "object",
    "properties": {
        "startDate": {"type": "string", "description": "Start date in ISO format (YYYY-MM-DD)"},
        "endDate": {"type": "string", "description": "End date in ISO format (YYYY-MM-DD)"},
    },
    "required": ["startDate", "endDate"],
}

CREATE_CALENDAR_EVENT_PARAMETERS = {
    "type": "object",
    "properties": {
        "title": {"type": "string", "description": "Title of the event"},
        "startDate": {"type": "string", "description": "Start date and time in ISO format"},
        "endDate": {"type": "string", "description": "End date and time in ISO format (defaults to the start)"},
        "notes": {"type": "string", "description": "Additional notes for the event"},
        "location": {"type": "string", "description": "Location of the event"},
    },
    "required": ["title", "startDate"],
}

CALCULATE_DAYS_BETWEEN_PARAMETERS = {
    "type": "object",
    "properties": {
        "startDate": {"type": "string", "description": "Start date in ISO format (YYYY-MM-DD)"},
        "endDate": {"type": "string", "description": "End date in ISO format (YYYY-MM-DD)"},
    },
    "required": ["startDate", "endDate"],
}

# =====================================================================
# Helpers
# =====================================================================

def _parse_iso(value: Any, key: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(str(value).strip())
    except ValueError:
        raise ToolError(f"Invalid date format for {key}: '{value}'. Please use ISO format (YYYY-MM-DD)")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed

def _is_date_only(value: Any) -> bool:
    return len(str(value).strip()) == 10

# =====================================================================
# Catalog
# =====================================================================

def build_tool_catalog(
    memory_service: MemoryService,
    calendar_provider: Optional[CalendarProvider] = None,
    clock: Clock = _utc_now,
) -> list[ToolDescriptor]:
    """
    Build the full static catalog. Permission filtering happens separately in resolve_available_tools.
    Calendar tools are only included when the host supplies a calendar provider.
    """

    async def add_memory(argument: str) -> str:
        args = parse_tool_args(argument, "content")
        content = require_arg(args, "content", "add_memory")
        metadata = args.get("metadata")
        if metadata is not None and not isinstance(metadata, dict):
            raise ToolError("metadata must be a JSON object")
        try:
            memory_id = await memory_service.add_memory(str(content), metadata)
        except EmptyInputError as e:
            raise ToolError(str(e))
        return f"Memory added successfully with ID: {memory_id}"

    async def search_memory(argument: str) -> str:
        args = parse_tool_args(argument, "query")
        query = require_arg(args, "query", "search_memory")
        try:
            limit = int(args.get("limit", 5))
        except (TypeError, ValueError):
            raise ToolError(f"limit must be an integer, got '{args.get('limit')}'")

        results = await memory_service.query_memory(str(query), limit)
        if not results:
            return "No relevant memories found"
        lines = "\n".join(f"{i}. {content}" for i, content in enumerate(results, 1))
        return f"Found {len(results)} relevant memories:\n{lines}"

    async def get_current_time(argument: str) -> str:
        now = clock()
        return f"Current date and time: {now.isoformat()} ({now.strftime('%A')})"

    async def calculate_days_between(argument: str) -> str:
        args = parse_tool_args(argument, "startDate")
        start_raw = require_arg(args, "startDate", "calculate_days_between")
        end_raw = require_arg(args, "endDate", "calculate_days_between")
        start = _parse_iso(start_raw, "startDate")
        end = _parse_iso(end_raw, "endDate")
        days = math.ceil(abs((end - start).total_seconds()) / 86400)
        return f"There are {days} days between {start_raw} and {end_raw}"

    catalog = [
        ToolDescriptor(
            name="add_memory",
            description="Store important information in long-term memory for later retrieval",
            invoke=add_memory,
            parameters=ADD_MEMORY_PARAMETERS,
            category="memory",
        ),
        ToolDescriptor(
            name="search_memory",
            description="Search through stored memories using semantic similarity",
            invoke=search_memory,
            parameters=SEARCH_MEMORY_PARAMETERS,
            category="memory",
        ),
    ]

    if calendar_provider is not None:
        async def get_calendar_events(argument: str) -> str:
            args = parse_tool_args(argument, "startDate")
            start_raw = require_arg(args, "startDate", "get_calendar_events")
            end_raw = require_arg(args, "endDate", "get_calendar_events")
            start = _parse_iso(start_raw, "startDate")
            end = _parse_iso(end_raw, "endDate")
            # a bare end date means "through the end of that day"
            if _is_date_only(end_raw):
                end = end + timedelta(days=1)

            events = await calendar_provider.aget_events(start, end)
            if not events:
                return f"No calendar events found between {start_raw} and {end_raw}"
            lines = "\n".join(f"- {event.title} ({event.start.isoformat()} - {event.end.isoformat()})" for event in events)
            return f"Found {len(events)} events:\n{lines}"

        async def create_calendar_event(argument: str) -> str:
            args = parse_tool_args(argument, "title")
            title = str(require_arg(args, "title", "create_calendar_event"))
            start = _parse_iso(require_arg(args, "startDate", "create_calendar_event"), "startDate")
            end = _parse_iso(args["endDate"], "endDate") if args.get("endDate") else start
            if end < start:
                raise ToolError("endDate must not be before startDate")

            event_id = await calendar_provider.acreate_event(
                title=title,
                start=start,
                end=end,
                notes=args.get("notes"),
                location=args.get("location"),
            )
            logger.info(f"Created calendar event {event_id}: {title}")
            return f"Calendar event '{title}' created successfully. ID: {event_id}"

        catalog += [
            ToolDescriptor(
                name="get_calendar_events",
                description="Retrieve calendar events for a specific date range",
                invoke=get_calendar_events,
                parameters=GET_CALENDAR_EVENTS_PARAMETERS,
                category="calendar",
                requires_permission=True,
                permission_key="calendar",
            ),
            ToolDescriptor(
                name="create_calendar_event",
                description="Create a new calendar event",
                invoke=create_calendar_event,
                parameters=CREATE_CALENDAR_EVENT_PARAMETERS,
                category="calendar",
                requires_permission=True,
                permission_key="calendar",
            ),
        ]

    catalog += [
        ToolDescriptor(
            name="get_current_time",
            description="Get the current date and time",
            invoke=get_current_time,
            parameters={"type": "object", "properties": {}, "required": []},
            category="system",
        ),
        ToolDescriptor(
            name="calculate_days_between",
            description="Calculate the number of days between two dates",
            invoke=calculate_days_between,
            parameters=CALCULATE_DAYS_BETWEEN_PARAMETERS,
            category="utility",
        ),
    ]
    return catalog
