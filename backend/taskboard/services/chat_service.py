"""LLM client for the board assistant: system prompt and the model call."""

import asyncio
import logging

from anthropic import APIError, APITimeoutError, AsyncAnthropic

from taskboard.config import get_settings, sanitize_error
from taskboard.errors import LLMUnavailableError

logger = logging.getLogger(__name__)
settings = get_settings()


BOARD_ACTIONS = """\
- create_card: {"action": "create_card", "params": {"column": "column name", "title": "card title", "body": "optional description", "due_date": "YYYY-MM-DD (optional)"}, "message": "Created card..."}
- update_card: {"action": "update_card", "params": {"card": "card title", "title": "optional new title", "body": "optional", "status": "open|in_progress|done|closed", "visibility": "private|restricted|public"}, "message": "Updated card..."}
- move_card: {"action": "move_card", "params": {"card": "card title", "column": "destination column", "position": 0}, "message": "Moved card..."}
  (position is optional; omit it to put the card at the bottom. Moving a card that is not on this board adds it.)
- delete_card: {"action": "delete_card", "params": {"card": "card title"}, "message": "Deleted card..."}
- assign_card_to_board: {"action": "assign_card_to_board", "params": {"card": "card title", "column": "optional column"}, "message": "Added card..."}
- unassign_card_from_board: {"action": "unassign_card_from_board", "params": {"card": "card title"}, "message": "Removed card from the board..."}
- create_column: {"action": "create_column", "params": {"name": "column name", "position": 1}, "message": "Created column..."}
- update_column: {"action": "update_column", "params": {"column": "current name", "name": "new name"}, "message": "Renamed column..."}
- move_column: {"action": "move_column", "params": {"column": "column name", "position": 0}, "message": "Moved column..."}
- delete_column: {"action": "delete_column", "params": {"column": "column name"}, "message": "Deleted column (its cards become unfiled)..."}
- create_tag: {"action": "create_tag", "params": {"name": "tag name", "color": "#hex_color"}, "message": "Created tag..."}
- delete_tag: {"action": "delete_tag", "params": {"tag": "tag name"}, "message": "Deleted tag..."}
- add_tag_to_card: {"action": "add_tag_to_card", "params": {"card": "card title", "tag": "tag name"}, "message": "Tagged card..."}
- remove_tag_from_card: {"action": "remove_tag_from_card", "params": {"card": "card title", "tag": "tag name"}, "message": "Removed tag..."}
- list_cards: {"action": "list_cards", "params": {"column": "optional column name"}, "message": "Here are the cards..."}
- list_tags: {"action": "list_tags", "params": {}, "message": "Here are the tags..."}
- no_action: {"action": "no_action", "params": {}, "message": "Your answer..."}"""

GLOBAL_ACTIONS = """\
- create_board: {"action": "create_board", "params": {"name": "board name", "description": "optional", "columns": ["Todo", "Doing", "Done"]}, "message": "Created board..."}
- create_card: {"action": "create_card", "params": {"board": "board name (omit for your inbox)", "column": "column name", "title": "card title"}, "message": "Created card..."}
- move_card: {"action": "move_card", "params": {"board": "board name", "card": "card title", "column": "destination column"}, "message": "Moved card..."}
- move_card_cross_board: {"action": "move_card_cross_board", "params": {"from_board": "source board", "board": "target board", "card": "card title", "column": "optional destination column"}, "message": "Moved card..."}
- create_tag: {"action": "create_tag", "params": {"board": "board name (omit for a global tag)", "name": "tag name", "color": "#hex_color"}, "message": "Created tag..."}
- add_tag_to_card: {"action": "add_tag_to_card", "params": {"board": "board name", "card": "card title", "tag": "tag name"}, "message": "Tagged card..."}
- list_cards: {"action": "list_cards", "params": {"board": "board name"}, "message": "Here are the cards..."}
- delete_card: {"action": "delete_card", "params": {"board": "board name", "card": "card title"}, "message": "Deleted card..."}
- no_action: {"action": "no_action", "params": {}, "message": "Your answer..."}
Every board action from the single-board list also works here when you add "board"."""


class ChatService:
    """Service for the board assistant's LLM round-trip."""

    def __init__(self):
        """Initialize Anthropic client. Retries are left to the user resending."""
        self.client = AsyncAnthropic(
            api_key=settings.anthropic_api_key,
            max_retries=0,
            timeout=settings.llm_timeout_seconds,
        )

    def build_system_prompt(self, context: str, *, board_name: str | None) -> str:
        """
        Build the system prompt from the rendered context snapshot.

        Board conversations get the single-board action catalogue; the
        global conversation gets the cross-board one.
        """
        if board_name is not None:
            intro = f'You are a Kanban board assistant for the board "{board_name}".'
            catalogue = BOARD_ACTIONS
        else:
            intro = "You are a Kanban assistant with access to all of the user's boards."
            catalogue = GLOBAL_ACTIONS

        return f"""{intro}

You change the board by replying with JSON actions. One action:
{{"action": "...", "params": {{...}}, "message": "what you did"}}
Several actions, applied in order:
{{"actions": [{{"action": "...", "params": {{...}}}}, ...], "message": "what you did"}}

Available actions:
{catalogue}

---

## Current State

{context}

---

Refer to columns, cards and tags by the exact names shown above. Use "no_action" when the user is only asking a question or chatting."""

    async def get_full_response(
        self,
        user_message: str,
        conversation_history: list[dict],
        system_prompt: str,
    ) -> str:
        """
        Send one request to the model and return its text.

        Args:
            user_message: Current user message
            conversation_history: Previous turns (dicts with 'role' and 'content')
            system_prompt: Prompt from build_system_prompt

        Raises:
            LLMUnavailableError: the model timed out or could not be reached
        """
        messages = conversation_history + [{"role": "user", "content": user_message}]
        try:
            message = await asyncio.wait_for(
                self.client.messages.create(
                    model=settings.llm_model,
                    max_tokens=settings.llm_max_tokens,
                    system=system_prompt,
                    messages=messages,
                ),
                timeout=settings.llm_timeout_seconds,
            )
        except (asyncio.TimeoutError, APITimeoutError) as e:
            logger.warning("LLM request timed out after %.1fs", settings.llm_timeout_seconds)
            raise LLMUnavailableError(
                "The assistant did not answer in time. Please send your message again.",
                timed_out=True,
            ) from e
        except APIError as e:
            logger.exception("LLM request failed")
            safe_msg = sanitize_error(e, generic_message="The assistant is unavailable right now.")
            raise LLMUnavailableError(safe_msg) from e

        return "".join(block.text for block in message.content if block.type == "text")


# Singleton instance
chat_service = ChatService()


def get_chat_service() -> ChatService:
    """FastAPI dependency returning the shared chat service."""
    return chat_service
