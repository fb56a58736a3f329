from agentloop.cli.main import app


def test_ask_workflow(cli_runner, workspace):
    result = cli_runner.invoke(app, ["ask", "Say hello"])

    assert result.exit_code == 0
    assert "Hello." in result.output
    assert "status=completed" in result.output
    assert "tokens=20+5" in result.output


def test_config_reads_workspace_file(cli_runner, workspace):
    result = cli_runner.invoke(app, ["config"])

    assert result.exit_code == 0
    assert "max_iterations" in result.output
    assert "4" in result.output
