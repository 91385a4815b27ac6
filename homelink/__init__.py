# homelink/__init__.py
# SPDX-FileCopyrightText: Copyright (c) 2026 Christopher Piggott
# SPDX-License-Identifier: MIT
from .client import HomeClient
from .matcher import check_pattern, topic_matches
from .minimqtt_transport import MiniMQTTTransport
from .mqtt_session import MQTTSession, SessionState
from .policy import ConnectionPolicy, load_policy
from .radio import RadioLink, StaticLink
from .router import Subscription, SubscriptionRouter
from .topics import CMND, STAT, TELE, build_topic
from .wifi_mgr import LinkState, WifiManager

__all__ = [
    "CMND",
    "ConnectionPolicy",
    "HomeClient",
    "LinkState",
    "MQTTSession",
    "MiniMQTTTransport",
    "RadioLink",
    "STAT",
    "SessionState",
    "StaticLink",
    "Subscription",
    "SubscriptionRouter",
    "TELE",
    "WifiManager",
    "build_topic",
    "check_pattern",
    "load_policy",
    "topic_matches",
]
