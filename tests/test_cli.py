"""Tests for cli.py - command-line entry point."""

import json
from unittest.mock import MagicMock, patch

import pytest

import cli
from cluster_client.session import SessionError


class TestParser:
    """Tests for argument parsing."""

    def test_command_required(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])

    def test_apply_requires_file(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(['apply'])

    def test_apply_options(self):
        args = cli.build_parser().parse_args(
            ['apply', '-f', 'app.yaml', '-n', 'team-a', '--delete', '--context', 'dev'])
        assert str(args.file) == 'app.yaml'
        assert args.namespace == 'team-a'
        assert args.delete
        assert args.context == 'dev'
        assert args.kubeconfig is None


class TestOperations:
    def test_table(self, capsys):
        assert cli.main(['operations']) == 0
        out = capsys.readouterr().out
        assert 'octarine_install' in out
        assert 'Custom YAML' in out

    def test_json(self, capsys):
        assert cli.main(['operations', '--json']) == 0
        ops = json.loads(capsys.readouterr().out)
        assert ops['octarine_vet'] == 'Run the Octarine self-check'


class TestApply:
    """Tests for the apply command."""

    MANIFEST = "apiVersion: v1\nkind: ConfigMap\nmetadata:\n  name: settings\n"

    @pytest.fixture
    def manifest_file(self, tmp_path):
        path = tmp_path / 'app.yaml'
        path.write_text(self.MANIFEST)
        return path

    @pytest.fixture
    def config_file(self, tmp_path, templates_dir):
        path = tmp_path / 'adapter.yaml'
        path.write_text(f'templates_dir: {templates_dir}\n')
        return path

    def test_apply(self, manifest_file, config_file, session, fake_client, capsys):
        with patch('adapter.create_session', return_value=session):
            rc = cli.main(['-c', str(config_file), 'apply', '-f', str(manifest_file), '-n', 'team-a'])

        assert rc == 0
        assert ('configmaps', 'team-a', 'settings') in fake_client.objects
        assert 'Applied' in capsys.readouterr().out

    def test_delete(self, manifest_file, config_file, session, fake_client):
        fake_client.add({'apiVersion': 'v1', 'kind': 'ConfigMap',
                         'metadata': {'name': 'settings', 'namespace': 'team-a'}})
        with patch('adapter.create_session', return_value=session):
            rc = cli.main(['-c', str(config_file), 'apply', '-f', str(manifest_file),
                           '-n', 'team-a', '--delete'])

        assert rc == 0
        assert fake_client.objects == {}

    def test_kubeconfig_read(self, manifest_file, config_file, session, tmp_path):
        kubeconfig = tmp_path / 'kubeconfig'
        kubeconfig.write_bytes(b'apiVersion: v1\n')
        with patch('adapter.create_session', return_value=session) as mock_create:
            cli.main(['-c', str(config_file), 'apply', '-f', str(manifest_file), '-n', 'team-a',
                      '--kubeconfig', str(kubeconfig), '--context', 'dev'])

        _, kubeconfig_bytes, context = mock_create.call_args[0]
        assert (kubeconfig_bytes, context) == (b'apiVersion: v1\n', 'dev')

    def test_missing_file(self, config_file, tmp_path):
        assert cli.main(['-c', str(config_file), 'apply', '-f', str(tmp_path / 'nope.yaml')]) == 1

    def test_empty_file(self, config_file, tmp_path):
        empty = tmp_path / 'empty.yaml'
        empty.write_text('')
        with patch('adapter.create_session', return_value=MagicMock()):
            assert cli.main(['-c', str(config_file), 'apply', '-f', str(empty)]) == 1

    def test_cluster_error(self, manifest_file, config_file, session, fake_client):
        fake_client.fail('create', 'configmaps', status=403, message='forbidden')
        fake_client.fail('get', 'configmaps', status=403, message='forbidden')
        with patch('adapter.create_session', return_value=session):
            rc = cli.main(['-c', str(config_file), 'apply', '-f', str(manifest_file), '-n', 'team-a'])
        assert rc == 2

    def test_session_error(self, manifest_file, config_file):
        with patch('adapter.create_session', side_effect=SessionError('no cluster')):
            assert cli.main(['-c', str(config_file), 'apply', '-f', str(manifest_file)]) == 2

    def test_bad_config(self, manifest_file, tmp_path):
        assert cli.main(['-c', str(tmp_path / 'missing.yaml'), 'apply', '-f', str(manifest_file)]) == 1


class TestServe:
    """Tests for the serve command."""

    def test_serve(self, tmp_path):
        config_file = tmp_path / 'adapter.yaml'
        config_file.write_text('port: 12000\n')
        with patch('server.httpd.Server') as mock_server:
            assert cli.main(['-c', str(config_file), 'serve', '--bind', '127.0.0.1']) == 0

        _, kwargs = mock_server.call_args
        assert kwargs == {'bind': '127.0.0.1', 'port': 12000}
        mock_server.return_value.start.assert_called_once()
        mock_server.return_value.serve_forever.assert_called_once()

    def test_serve_port_override(self, tmp_path):
        config_file = tmp_path / 'adapter.yaml'
        config_file.write_text('port: 12000\n')
        with patch('server.httpd.Server') as mock_server:
            cli.main(['-c', str(config_file), 'serve', '-p', '0'])
        assert mock_server.call_args.kwargs['port'] == 0

    def test_serve_bind_failure(self, tmp_path):
        config_file = tmp_path / 'adapter.yaml'
        config_file.write_text('{}\n')
        with patch('server.httpd.Server') as mock_server:
            mock_server.return_value.start.side_effect = OSError('address in use')
            assert cli.main(['-c', str(config_file), 'serve']) == 1

    def test_serve_connect_failure(self, tmp_path):
        config_file = tmp_path / 'adapter.yaml'
        config_file.write_text('{}\n')
        with patch('adapter.create_session', side_effect=SessionError('no cluster')):
            with patch('server.httpd.Server') as mock_server:
                assert cli.main(['-c', str(config_file), 'serve', '--connect']) == 1
        mock_server.assert_not_called()
