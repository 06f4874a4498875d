"""
Discrete events sent to the Statful events endpoint.

Unlike metrics, events are shipped as a JSON array rather than line protocol.
"""
import json
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Amount:
    """A monetary amount attached to an event."""
    value: int = 0
    currency: str = ''


@dataclass
class Attribute:
    """A free-form key/value pair attached to an event."""
    attribute: str
    value: str


@dataclass
class Event:
    """A single business event."""
    user_id: str = ''
    ext_user_id: str = ''
    game_id: str = ''
    operator_id: str = ''
    aggregator_id: str = ''
    publisher_id: str = ''
    event_type: str = ''
    amount: Amount = field(default_factory=Amount)
    variable_attributes: List[Attribute] = field(default_factory=list)
    timestamp: int = 0
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        """
        Get the event in the shape expected by the API.

        Returns:
            dict: The event with camelCase keys
        """
        return {
            'eventId': self.event_id,
            'userId': self.user_id,
            'extUserId': self.ext_user_id,
            'gameId': self.game_id,
            'operatorId': self.operator_id,
            'aggregatorId': self.aggregator_id,
            'publisherId': self.publisher_id,
            'eventType': self.event_type,
            'amount': {
                'value': self.amount.value,
                'currency': self.amount.currency
            },
            'variableAttributes': [
                {'attribute': a.attribute, 'value': a.value}
                for a in self.variable_attributes
            ],
            'timestamp': self.timestamp
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(',', ':'))


def new_event(
    user_id: str,
    game_id: str,
    operator_id: str,
    aggregator_id: str,
    event_type: str,
    amount: int,
    currency: str,
    attributes: Optional[List[Attribute]] = None,
    timestamp: int = 0,
    ext_user_id: str = '',
    publisher_id: str = '',
    event_id: Optional[str] = None
) -> Event:
    """
    Create an event, generating an event id when none is given.

    Returns:
        Event: The new event
    """
    event = Event(
        user_id=user_id,
        ext_user_id=ext_user_id,
        game_id=game_id,
        operator_id=operator_id,
        aggregator_id=aggregator_id,
        publisher_id=publisher_id,
        event_type=event_type,
        amount=Amount(value=amount, currency=currency),
        variable_attributes=list(attributes or []),
        timestamp=timestamp
    )
    if event_id is not None:
        event.event_id = event_id
    return event


def events_to_json(events: List[Event]) -> str:
    """Serialize a batch of events as one JSON array."""
    return json.dumps([e.to_dict() for e in events], separators=(',', ':'))
