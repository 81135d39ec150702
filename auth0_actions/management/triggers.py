"""Trigger bindings manager.

Maintains the ordered list of actions bound to one trigger. The Management
API replaces a trigger's whole binding list on every write, so each mutation
re-reads the current list, derives the complete desired list and writes it
back. Concurrent mutations of the same trigger are not coordinated: the last
write wins.

Errors from the client propagate to the caller.
"""

from typing import List, Optional

import structlog

from auth0_actions.management.client import Auth0ManagementClient
from auth0_actions.management.schemas import TriggerBinding, TriggerBindingUpdate
from auth0_actions.management.templates import POST_LOGIN_TRIGGER_ID

logger = structlog.get_logger()


class TriggersManager:
    """Bind, unbind and reorder actions on a trigger."""

    def __init__(
        self,
        client: Auth0ManagementClient,
        trigger_id: str = POST_LOGIN_TRIGGER_ID,
        default_display_name: Optional[str] = None,
    ):
        self.client = client
        self.trigger_id = trigger_id
        self.default_display_name = default_display_name

    async def list_bindings(self) -> List[TriggerBinding]:
        """Get the current ordered bindings of the trigger."""
        return await self.client.get_trigger_bindings(self.trigger_id)

    async def bind(
        self,
        action_id: str,
        display_name: Optional[str] = None,
        position: Optional[int] = None,
    ) -> List[TriggerBinding]:
        """Bind an action, inserting it at ``position`` or appending it.

        Binding an action that is already bound returns the current list
        without writing.
        """
        current = await self.list_bindings()

        if any(b.action_id == action_id for b in current):
            logger.debug("Action already bound", trigger_id=self.trigger_id, action_id=action_id)
            return current

        new_binding = TriggerBindingUpdate.for_action(
            action_id,
            display_name or self.default_display_name or action_id,
        )
        updates = [TriggerBindingUpdate.from_binding(b) for b in current]

        if position is not None and 0 <= position <= len(updates):
            updates.insert(position, new_binding)
        else:
            updates.append(new_binding)

        result = await self.client.update_trigger_bindings(self.trigger_id, updates)
        logger.info(
            "Action bound to trigger",
            trigger_id=self.trigger_id,
            action_id=action_id,
            position=updates.index(new_binding),
        )
        return result

    async def unbind(self, action_id: str) -> List[TriggerBinding]:
        """Remove an action from the trigger.

        Unbinding an action that is not bound returns the current list
        without writing.
        """
        current = await self.list_bindings()
        remaining = [b for b in current if b.action_id != action_id]

        if len(remaining) == len(current):
            return current

        result = await self.client.update_trigger_bindings(
            self.trigger_id,
            [TriggerBindingUpdate.from_binding(b) for b in remaining],
        )
        logger.info("Action unbound from trigger", trigger_id=self.trigger_id, action_id=action_id)
        return result

    async def reorder(self, action_ids: List[str]) -> List[TriggerBinding]:
        """Set the binding order to exactly ``action_ids``.

        Ids without a current binding are dropped. The list is always written,
        even when the order is unchanged.
        """
        current = await self.list_bindings()
        by_action = {b.action_id: b for b in current}

        updates = []
        seen = set()
        for action_id in action_ids:
            binding = by_action.get(action_id)
            if binding is None or action_id in seen:
                continue
            seen.add(action_id)
            updates.append(TriggerBindingUpdate.from_binding(binding))

        result = await self.client.update_trigger_bindings(self.trigger_id, updates)
        logger.info("Trigger bindings reordered", trigger_id=self.trigger_id, count=len(updates))
        return result

    async def is_bound(self, action_id: str) -> bool:
        bindings = await self.list_bindings()
        return any(b.action_id == action_id for b in bindings)
