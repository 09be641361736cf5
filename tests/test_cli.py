import json

import pytest
from click.testing import CliRunner

from desuru import cli as cli_module
from desuru.cli import cli
from desuru.core.exceptions import BuildError
from desuru.core.models import Category, DeploymentProfile, INTEGRATED_SERVER

NEXT = DeploymentProfile("Next.js", Category.FULLSTACK, build_command=("npm", "run", "build"),
                         start_command=("npm", "start"), entry_point=INTEGRATED_SERVER, port=3000)


class RecordingDeployer:
    contexts = []
    error = None

    def run(self, context):
        RecordingDeployer.contexts.append(context)
        if RecordingDeployer.error is not None:
            raise RecordingDeployer.error
        context.profile = NEXT
        context.package_manager = "npm"
        return context


@pytest.fixture
def deploy_env(tmp_path, monkeypatch):
    project = tmp_path / "project"
    project.mkdir()
    monkeypatch.chdir(project)
    monkeypatch.setattr(cli_module, 'Deployer', RecordingDeployer)
    monkeypatch.setattr(cli_module, 'LOG_DIR', str(tmp_path / "logs"))
    monkeypatch.setattr(cli_module, 'print_server_info', lambda: {})
    RecordingDeployer.contexts = []
    RecordingDeployer.error = None
    return project


def test_help():
    result = CliRunner().invoke(cli, ['--help'])
    assert result.exit_code == 0
    for option in ('--app', '--domain', '--port', '--ssl', '--email', '--instances', '--memory'):
        assert option in result.output


def test_missing_required_option():
    result = CliRunner().invoke(cli, ['--app', 'web'])
    assert result.exit_code == 2


def test_unknown_option():
    result = CliRunner().invoke(cli, ['--app', 'web', '--domain', 'example.com', '--color'])
    assert result.exit_code == 2


def test_invalid_app_name(deploy_env):
    result = CliRunner().invoke(cli, ['--app', 'a', '--domain', 'example.com'])
    assert result.exit_code == 1
    assert "Invalid app name" in result.output
    assert RecordingDeployer.contexts == []


def test_ssl_without_email(deploy_env):
    result = CliRunner().invoke(cli, ['--app', 'web', '--domain', 'example.com', '--ssl'])
    assert result.exit_code == 1
    assert "--email" in result.output


def test_successful_run(deploy_env, tmp_path):
    result = CliRunner().invoke(cli, ['--app', 'shop', '--domain', 'shop.example.com', '--instances', 'max'])

    assert result.exit_code == 0, result.output
    assert "Deployment completed successfully!" in result.output
    assert "pm2 logs shop" in result.output

    context = RecordingDeployer.contexts[0]
    assert context.params.instances == "max"
    assert context.params.port == 3000
    assert context.project_dir == deploy_env
    assert list((tmp_path / "logs").glob("deploy-shop-*.log"))


def test_project_defaults_file(deploy_env):
    (deploy_env / ".desuru.json").write_text(json.dumps({"deploy": {"port": 8080, "memory": "1G"}}))

    result = CliRunner().invoke(cli, ['--app', 'shop', '--domain', 'example.com', '--memory', '2G'])

    assert result.exit_code == 0, result.output
    params = RecordingDeployer.contexts[0].params
    assert params.port == 8080
    assert params.memory == "2G"


def test_fatal_error_reports_hints(deploy_env):
    RecordingDeployer.error = BuildError("Build failed: exit 1", hints=["Try: npm run build locally first"])

    result = CliRunner().invoke(cli, ['--app', 'shop', '--domain', 'example.com'])

    assert result.exit_code == 1
    assert "Build failed: exit 1" in result.output
    assert "npm run build locally first" in result.output
    assert "Deployment failed with 1 error(s)" in result.output
    assert "tail -50" in result.output


def test_usage_error_goes_to_stdout():
    result = CliRunner().invoke(cli, ['--app', 'web'])
    assert result.exit_code == 2
    assert "Usage:" in result.stdout
    assert "--domain" in result.stdout


def test_numeric_memory_in_defaults_file(deploy_env):
    (deploy_env / ".desuru.json").write_text(json.dumps({"deploy": {"memory": 512}}))

    result = CliRunner().invoke(cli, ['--app', 'shop', '--domain', 'example.com'])

    assert result.exit_code == 0, result.output
    assert RecordingDeployer.contexts[0].params.memory == "512"


def test_non_text_email_in_defaults_file(deploy_env):
    (deploy_env / ".desuru.json").write_text(json.dumps({"deploy": {"email": 5}}))

    result = CliRunner().invoke(cli, ['--app', 'shop', '--domain', 'example.com', '--ssl'])

    assert result.exit_code == 1
    assert not isinstance(result.exception, TypeError)
    assert "Invalid email format" in result.output


def test_text_ssl_flag_in_defaults_file(deploy_env):
    (deploy_env / ".desuru.json").write_text(json.dumps({"deploy": {"ssl": "false"}}))

    result = CliRunner().invoke(cli, ['--app', 'shop', '--domain', 'example.com'])

    assert result.exit_code == 1
    assert "must be true or false" in result.output
    assert RecordingDeployer.contexts == []


def test_ssl_flag_in_defaults_file(deploy_env):
    (deploy_env / ".desuru.json").write_text(
        json.dumps({"deploy": {"ssl": True, "email": "ops@example.com"}})
    )

    result = CliRunner().invoke(cli, ['--app', 'shop', '--domain', 'example.com'])

    assert result.exit_code == 0, result.output
    params = RecordingDeployer.contexts[0].params
    assert params.ssl is True
    assert params.email == "ops@example.com"


def test_step_numbers_restart_each_run(deploy_env):
    runner = CliRunner()
    first = runner.invoke(cli, ['--app', 'shop', '--domain', 'example.com'])
    second = runner.invoke(cli, ['--app', 'shop', '--domain', 'example.com'])

    assert "[STEP 1]" in first.output
    assert "[STEP 1]" in second.output
    assert "[STEP 2]" not in second.output
