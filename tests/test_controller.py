import dataclasses

import pytest

from cablerelay.controller import Controller, NodeConfig


def test_node_config_defaults():
    config = NodeConfig()
    assert config.ping_interval == 3
    assert config.stats_refresh_interval == 5
    assert config.hub_gopool_size == 16
    assert config.ping_timestamp_precision == "s"


def test_node_config_override_keeps_other_defaults():
    config = dataclasses.replace(NodeConfig(), hub_gopool_size=2)
    assert config.hub_gopool_size == 2
    assert config.ping_interval == NodeConfig().ping_interval


def test_node_config_equality():
    assert NodeConfig() == NodeConfig()
    assert NodeConfig(ping_interval=10) != NodeConfig()


def test_controller_is_abstract():
    with pytest.raises(TypeError):
        Controller()