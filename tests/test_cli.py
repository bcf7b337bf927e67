"""
Tests for the import CLI.
"""

import logging
from pathlib import Path

import pytest
from click.testing import CliRunner

from scripts.excel_importer_cli import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def restore_logging():
    """The CLI reconfigures root logging; put the original handlers back afterwards."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)


@pytest.fixture
def config_file(tmp_path, database_url, engine):
    """Connection config file pointing at the test database."""
    path = tmp_path / 'db.env'
    path.write_text(f'DATABASE_URL={database_url}\n')
    return str(path)


class TestCli:
    """Test the import command."""

    def test_help(self, runner):
        """Test that the import command documents its options."""
        result = runner.invoke(cli, ['import', '--help'])

        assert result.exit_code == 0
        for option in ('--data-file', '--unique-field', '--map', '--default', '--no-trim'):
            assert option in result.output

    def test_import_prints_summary(self, runner, config_file, make_workbook, fetch_users):
        """Test a successful import and the final summary."""
        path = make_workbook('users.xlsx', [
            ['Username', 'E-Mail', 'Anrede'],
            ['bob', 'bob@example.org', 'Herr'],
            ['eve', 'eve@example.org', 'Frau'],
        ])

        result = runner.invoke(cli, [
            'import', '-d', path, '-c', config_file, '-t', 'fe_users',
            '-u', 'username',
            '--column', 'username:Username', '--column', 'email:E-Mail', '--column', 'gender:Anrede',
            '--map', 'gender:Herr:1', '--map', 'gender:Frau:2',
            '--default', 'pid:12',
        ])

        assert result.exit_code == 0, result.output
        assert 'Items updated: 0' in result.output
        assert 'Items created: 2' in result.output
        assert [(u['username'], u['gender'], u['pid']) for u in fetch_users()] == [
            ('bob', '1', '12'), ('eve', '2', '12')
        ]

    def test_reimport_updates(self, runner, config_file, make_workbook):
        """Test that importing the same file twice only updates the second time."""
        path = make_workbook('users.xlsx', [['username', 'name'], ['bob', 'Bob']])
        args = ['import', '-d', path, '-c', config_file, '-u', 'username']

        runner.invoke(cli, args)
        result = runner.invoke(cli, args)

        assert result.exit_code == 0, result.output
        assert 'Items updated: 1' in result.output
        assert 'Items created: 0' in result.output

    def test_table_defaults_to_setting(self, runner, config_file, make_workbook, fetch_people, monkeypatch):
        """Test that --table falls back to DEFAULT_TABLE."""
        monkeypatch.setenv('DEFAULT_TABLE', 'people')
        path = make_workbook('people.xlsx', [['Name', 'Age'], ['  Alice  ', '30']])

        result = runner.invoke(cli, ['import', '-d', path, '-c', config_file, '-u', 'Name', '--no-trim'])

        assert result.exit_code == 0, result.output
        assert [(r['Name'], r['Age']) for r in fetch_people()] == [('  Alice  ', '30')]

    def test_success_directory(self, runner, config_file, make_workbook, tmp_path):
        """Test that imported files are moved to the success directory."""
        path = make_workbook('users.xlsx', [['username'], ['bob']])
        done = tmp_path / 'done'

        result = runner.invoke(cli, [
            'import', '-d', path, '-c', config_file, '-u', 'username',
            '--success-directory', str(done),
        ])

        assert result.exit_code == 0, result.output
        assert (done / 'users.xlsx').exists()
        assert not Path(path).exists()

    def test_missing_unique_field(self, runner, config_file, make_workbook):
        """Test that an empty unique-field list is rejected before importing."""
        path = make_workbook('users.xlsx', [['username'], ['bob']])

        result = runner.invoke(cli, ['import', '-d', path, '-c', config_file])

        assert result.exit_code == 1
        assert 'unique-field list must be non-empty' in result.output

    def test_malformed_value_mapping(self, runner, config_file, make_workbook):
        """Test that a value mapping without target is rejected."""
        path = make_workbook('users.xlsx', [['username'], ['bob']])

        result = runner.invoke(cli, ['import', '-d', path, '-c', config_file, '-u', 'username',
                                     '--map', 'gender:Herr'])

        assert result.exit_code == 1
        assert 'Invalid value mapping' in result.output

    def test_failed_file_exit_code(self, runner, config_file, make_workbook, fetch_users):
        """Test that a failed file is reported and the summary is still printed."""
        path = make_workbook('users.xlsx', [['username', 'Nmae'], ['bob', 'Bob']])

        result = runner.invoke(cli, ['import', '-d', path, '-c', config_file, '-u', 'username'])

        assert result.exit_code == 1
        assert 'Unable to import file' in result.output
        assert "There is no column with name 'Nmae' on table 'fe_users'." in result.output
        assert 'Items created: 0' in result.output
        assert fetch_users() == []

    def test_verbose_after_command_name(self, runner, config_file, make_workbook):
        """Test that -v is accepted by the import command and enables debug logging."""
        path = make_workbook('users.xlsx', [['username'], ['bob']])

        result = runner.invoke(cli, ['import', '-v', '-d', path, '-c', config_file, '-u', 'username'])

        assert result.exit_code == 0, result.output
        assert logging.getLogger().level == logging.DEBUG
        assert 'Import row #2: bob' in result.output
