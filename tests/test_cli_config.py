"""Tests for CLI configuration module."""

import json
from pathlib import Path

from cli.config import Config
from common.constants import DEFAULT_INDEXER_RPC, DEFAULT_RPC_URL, MAX_FILE_SIZE


def test_config_creates_default_file(tmp_path):
    """Test that config file is created with defaults if missing."""
    config_path = tmp_path / '.privshare' / 'config.json'
    config = Config(config_path)

    assert config_path.exists()

    assert config.data['timeout'] == 30
    assert config.data['max_retries'] == 3
    assert config.data['retry_backoff_multiplier'] == 2
    assert config.data['enable_proof_verification'] is True
    assert config.data['max_file_size'] == MAX_FILE_SIZE


def test_config_loads_existing_file(tmp_path):
    """Test loading existing config file."""
    config_path = tmp_path / '.privshare' / 'config.json'
    config_path.parent.mkdir(parents=True)

    existing_data = {
        'rpc_url': 'http://rpc.example',
        'indexer_rpc': 'http://indexer.example',
        'index_url': 'http://index.example',
    }
    with open(config_path, 'w') as f:
        json.dump(existing_data, f)

    config = Config(config_path)

    assert config.get_rpc_url() == 'http://rpc.example'
    assert config.get_indexer_rpc() == 'http://indexer.example'
    assert config.get_index_url() == 'http://index.example'
    assert config.data['timeout'] == 30


def test_config_handles_corrupted_file(tmp_path):
    """Test recovery from corrupted config file."""
    config_path = tmp_path / '.privshare' / 'config.json'
    config_path.parent.mkdir(parents=True)

    with open(config_path, 'w') as f:
        f.write('{ invalid json content')

    config = Config(config_path)
    assert config.data['timeout'] == 30

    backup_path = config_path.with_suffix('.json.bak')
    assert backup_path.exists()


def test_config_endpoint_defaults(temp_config):
    """Empty endpoint values fall back to the public testnet."""
    temp_config.data['rpc_url'] = None
    temp_config.data['indexer_rpc'] = ''

    assert temp_config.get_rpc_url() == DEFAULT_RPC_URL
    assert temp_config.get_indexer_rpc() == DEFAULT_INDEXER_RPC


def test_config_signer_requires_url_and_address(temp_config):
    """Test signer configuration retrieval."""
    temp_config.data['signer_url'] = 'http://signer.example'
    temp_config.data['wallet_address'] = None
    assert temp_config.get_signer_config() is None

    temp_config.data['wallet_address'] = '0xabc'
    assert temp_config.get_signer_config() == {
        'signer_url': 'http://signer.example',
        'wallet_address': '0xabc',
    }


def test_config_get_retry_config(temp_config):
    """Test retry configuration retrieval."""
    retry_config = temp_config.get_retry_config()

    assert retry_config['max_retries'] == 3
    assert retry_config['retry_backoff_multiplier'] == 2

    temp_config.data['max_retries'] = 5
    temp_config.data['retry_backoff_multiplier'] = 3

    retry_config = temp_config.get_retry_config()
    assert retry_config['max_retries'] == 5
    assert retry_config['retry_backoff_multiplier'] == 3


def test_config_transfer_and_share_code_settings(temp_config):
    temp_config.data['max_concurrent_fetches'] = 8
    temp_config.data['check_collisions'] = True

    assert temp_config.get_transfer_config()['max_concurrent_fetches'] == 8
    assert temp_config.get_share_code_config() == {
        'scheme': 'privshare',
        'namespace': '0g',
        'check_collisions': True,
    }


def test_config_cache_path_defaults_beside_config(temp_config, temp_config_dir):
    assert temp_config.get_cache_path() == temp_config_dir / 'pointers.json'

    temp_config.data['cache_path'] = '/tmp/other.json'
    assert temp_config.get_cache_path() == Path('/tmp/other.json')


def test_config_save_persists_changes(temp_config):
    temp_config.data['download_dir'] = 'out'
    temp_config.save()

    with open(temp_config.config_path, 'r') as f:
        data = json.load(f)
    assert data['download_dir'] == 'out'
    assert Config(temp_config.config_path).get_download_dir() == Path('out')


def test_config_directory_created_if_missing(tmp_path):
    """Test that config directory is created if it doesn't exist."""
    config_path = tmp_path / 'nested' / 'deep' / '.privshare' / 'config.json'

    assert not config_path.parent.exists()

    Config(config_path)
    assert config_path.parent.exists()
    assert config_path.exists()
