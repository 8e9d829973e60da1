import json

from conftest import make_project, new_id, transient
from scripts.sync_projects import main


def test_status_command(reconciler, store, capsys):
    project = make_project()
    store.projects[project["id"]] = project

    assert main(["status", project["id"]], reconciler=reconciler) == 0
    assert json.loads(capsys.readouterr().out)["needs_sync"] is True


def test_sync_command_exit_code_reflects_failures(reconciler, store, capsys):
    project = make_project()
    store.projects[project["id"]] = project

    assert main(["sync", project["id"]], reconciler=reconciler) == 0
    capsys.readouterr()

    assert main(["sync", project["id"], new_id()], reconciler=reconciler) == 1
    assert json.loads(capsys.readouterr().out)["failed"] == 1


def test_sync_all_command(reconciler, store, backend):
    project = make_project()
    store.projects[project["id"]] = project
    backend.create_errors = [transient(500)] * 4

    assert main(["sync-all"], reconciler=reconciler) == 1


def test_verify_command(reconciler, store, capsys):
    assert main(["verify"], reconciler=reconciler) == 0

    project = make_project()
    store.projects[project["id"]] = project
    capsys.readouterr()

    assert main(["verify"], reconciler=reconciler) == 1
    assert json.loads(capsys.readouterr().out)["missing_in_backend"] == [project["id"]]


def test_invalid_id_exits_with_error(reconciler, capsys):
    assert main(["status", "bad"], reconciler=reconciler) == 2
    assert "error" in json.loads(capsys.readouterr().out)


def test_store_outage_exits_with_error(reconciler, store):
    store.fail = True
    assert main(["verify"], reconciler=reconciler) == 2
