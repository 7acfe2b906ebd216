# gcp_log_tail/transform/drop_filter.py

"""Decides whether an entry is left out of the output."""

from google.protobuf.message import Message

from ..config.tail_config import MatchRule, TailConfig
from .paths import short_log_name


def should_drop(entry: Message, config: TailConfig) -> bool:
    """Under ``drop-no-match``, drop entries that no log rule selects."""
    if config.match_rule != MatchRule.DROP_NO_MATCH:
        return False

    log_name = short_log_name(entry)
    resource_type = entry.resource.type
    for rule in config.logs:
        if rule.matches(log_name, resource_type):
            return False
    return True
