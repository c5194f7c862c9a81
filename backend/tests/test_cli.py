"""
CLI command tests.
"""

from colporter.models import Program, User


def test_system_init_is_idempotent(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["system", "init", "--program", "Field School"])
    assert result.exit_code == 0, result.output
    assert db_session.query(Program).one().name == "Field School"
    roles = {u.username: u.role for u in db_session.query(User).all()}
    assert roles == {"admin": "ADMIN", "supervisor": "SUPERVISOR", "viewer": "VIEWER"}

    result = runner.invoke(args=["system", "init"])
    assert result.exit_code == 0, result.output
    assert "already exists" in result.output
    assert db_session.query(User).count() == 3


def test_users_create(app, db_session, program):
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        "users", "create",
        "--program-id", str(program.id),
        "--username", "ana",
        "--email", "ana@colporter.test",
        "--password", "Password123!",
        "--role", "supervisor",
    ])
    assert result.exit_code == 0, result.output
    user = db_session.query(User).filter_by(username="ana").one()
    assert user.role == "SUPERVISOR"


def test_users_create_weak_password(app, db_session, program):
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        "users", "create",
        "--program-id", str(program.id),
        "--username", "weak",
        "--email", "weak@colporter.test",
        "--password", "short",
        "--role", "VIEWER",
    ])
    assert "Password validation failed" in result.output
    assert db_session.query(User).filter_by(username="weak").count() == 0
