"""Tests for configuration layering and the contracts mapping file."""

import json

import pytest
import yaml

from tx2uml.config import Tx2umlConfig, load_config, load_contracts
from tx2uml.utils.exceptions import ConfigError

from .conftest import INPUTS, LOGIC, PROXY, VAULT


@pytest.fixture
def in_tmp(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestLoadConfig:
    def test_defaults(self, in_tmp):
        config = load_config(env={})
        assert config == Tx2umlConfig()
        assert config.source == "node"
        assert config.output_format == "png"

    def test_layers_in_order(self, in_tmp):
        (in_tmp / "tx2uml.config.yaml").write_text(
            "source: indexer\nnetwork: kovan\npage_limit: 50\nnode_url: http://file:8545\n"
        )
        config = load_config(
            env={"TX2UML_NETWORK": "ropsten", "TX2UML_NODE_URL": "http://env:8545"},
            overrides={"node_url": "http://flag:8545", "network": None},
        )
        assert config.source == "indexer"
        assert config.page_limit == 50
        assert config.network == "ropsten"
        assert config.node_url == "http://flag:8545"

    def test_explicit_path(self, in_tmp):
        path = in_tmp / "custom.yaml"
        path.write_text("output_format: svg\nshow_gas: true\n")
        config = load_config(str(path), env={})
        assert config.output_format == "svg"
        assert config.show_gas is True

    def test_explicit_path_must_exist(self, in_tmp):
        with pytest.raises(ConfigError, match="not found"):
            load_config(str(in_tmp / "missing.yaml"), env={})

    def test_empty_file(self, in_tmp):
        (in_tmp / "tx2uml.config.yaml").write_text("")
        assert load_config(env={}) == Tx2umlConfig()

    def test_file_must_be_mapping(self, in_tmp):
        (in_tmp / "tx2uml.config.yaml").write_text("- node\n- indexer\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(env={})

    def test_unknown_key(self, in_tmp):
        (in_tmp / "tx2uml.config.yaml").write_text("colour: blue\n")
        with pytest.raises(ConfigError, match="Unknown configuration key 'colour'"):
            load_config(env={})

    def test_invalid_source(self, in_tmp):
        with pytest.raises(ConfigError, match="Invalid source"):
            load_config(env={"TX2UML_SOURCE": "etherscan"})

    def test_invalid_output_format(self, in_tmp):
        with pytest.raises(ConfigError, match="Invalid output format"):
            load_config(env={}, overrides={"output_format": "pdf"})

    def test_page_limit_must_be_positive(self, in_tmp):
        (in_tmp / "tx2uml.config.yaml").write_text("page_limit: 0\n")
        with pytest.raises(ConfigError, match="page_limit"):
            load_config(env={})

    def test_string_values_coerced(self):
        config = Tx2umlConfig().merge({"page_limit": "25", "show_gas": "yes"}, "environment")
        assert config.page_limit == 25
        assert config.show_gas is True

    def test_bad_integer_string(self):
        with pytest.raises(ConfigError, match="must be an integer"):
            Tx2umlConfig().merge({"timeout": "soon"}, "environment")

    def test_save_and_reload(self, in_tmp):
        Tx2umlConfig(source="indexer", network="kovan").save_to_yaml()
        with open("tx2uml.config.yaml") as f:
            assert yaml.safe_load(f)["network"] == "kovan"
        assert Tx2umlConfig.from_yaml() == Tx2umlConfig(source="indexer", network="kovan")


class TestLoadContracts:
    def test_input_file(self):
        contracts = load_contracts(str(INPUTS / "delegate_chain_contracts.json"))
        assert set(contracts) == {PROXY, LOGIC, VAULT}
        assert contracts[PROXY].name == "TokenProxy"
        assert contracts[PROXY].function_name("0xa9059cbb") == "transfer"
        assert contracts[LOGIC].name == "TokenLogic"
        assert contracts[LOGIC].abi
        assert contracts[VAULT].name == "Vault"
        assert contracts[VAULT].abi == []

    def test_keys_lowercased(self, tmp_path):
        path = tmp_path / "contracts.json"
        path.write_text(json.dumps({"0x5FbDB2315678afecb367f032d93F642f64180aa3": "Token"}))
        assert list(load_contracts(str(path))) == [PROXY]

    def test_artifact_abi_unwrapped(self, tmp_path):
        (tmp_path / "Token.json").write_text(json.dumps({"abi": [{"type": "function", "name": "mint", "inputs": []}]}))
        path = tmp_path / "contracts.json"
        path.write_text(json.dumps({PROXY: {"name": "Token", "abi_path": "Token.json"}}))
        contract = load_contracts(str(path))[PROXY]
        assert contract.function_name("0x1249c58b") == "mint"

    def test_invalid_address(self, tmp_path):
        path = tmp_path / "contracts.json"
        path.write_text(json.dumps({"0x1234": "Short"}))
        with pytest.raises(ConfigError, match="Invalid contract address"):
            load_contracts(str(path))

    def test_missing_abi_file(self, tmp_path):
        path = tmp_path / "contracts.json"
        path.write_text(json.dumps({PROXY: {"name": "Token", "abi_path": "missing.abi"}}))
        with pytest.raises(ConfigError, match="File not found"):
            load_contracts(str(path))

    def test_not_json(self, tmp_path):
        path = tmp_path / "contracts.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError, match="Failed to read"):
            load_contracts(str(path))

    def test_not_an_object(self, tmp_path):
        path = tmp_path / "contracts.json"
        path.write_text("[]")
        with pytest.raises(ConfigError, match="keyed by address"):
            load_contracts(str(path))

    @pytest.mark.parametrize("abi", [
        [{"type": "function", "name": "transfer", "inputs": [{"name": "to"}]}],
        ["transfer(address,uint256)"],
    ])
    def test_malformed_abi(self, tmp_path, abi):
        path = tmp_path / "contracts.json"
        path.write_text(json.dumps({PROXY: {"name": "Token", "abi": abi}}))
        with pytest.raises(ConfigError, match="Invalid ABI") as exc:
            load_contracts(str(path))
        assert exc.value.details["source"] == str(path)
