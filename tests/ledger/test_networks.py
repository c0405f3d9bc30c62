"""Tests for schoolcert.ledger.networks."""

from __future__ import annotations

import logging

from schoolcert.ledger.networks import DEFAULT_NETWORK, KNOWN_NETWORKS, resolve_rpc_url


class TestResolveRpcUrl:
    def test_localhost_builtin(self):
        assert resolve_rpc_url("localhost") == "http://127.0.0.1:8545"

    def test_override_wins(self):
        assert resolve_rpc_url("sepolia", {"sepolia": "https://sepolia.example"}) == (
            "https://sepolia.example"
        )

    def test_override_can_add_network(self):
        assert resolve_rpc_url("private", {"private": "http://10.0.0.5:8545"}) == (
            "http://10.0.0.5:8545"
        )

    def test_known_network_without_url_falls_back(self, caplog):
        with caplog.at_level(logging.WARNING, logger="schoolcert.ledger.networks"):
            url = resolve_rpc_url("polygon")
        assert url == KNOWN_NETWORKS[DEFAULT_NETWORK]
        assert "No RPC URL configured" in caplog.text

    def test_unknown_network_falls_back(self, caplog):
        with caplog.at_level(logging.WARNING, logger="schoolcert.ledger.networks"):
            url = resolve_rpc_url("moonbase")
        assert url == "http://127.0.0.1:8545"
        assert "Unknown network 'moonbase'" in caplog.text

    def test_empty_override_ignored(self):
        assert resolve_rpc_url("localhost", {"localhost": ""}) == "http://127.0.0.1:8545"

    def test_localhost_override_used_for_fallback(self):
        assert resolve_rpc_url("moonbase", {"localhost": "http://node:8545"}) == (
            "http://node:8545"
        )
