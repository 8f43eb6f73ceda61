"""Smoke test for the demonstration script."""

from bay_capacity import sample_usage


def test_demo_prints_every_view(capsys):
    sample_usage.main()
    output = capsys.readouterr().out
    assert "ok=True" in output
    assert "Lanes in Bay A:" in output
    assert "Monthly forecast:" in output
    assert "12-week capacity outlook:" in output
    assert "Variance against original plan:" in output
