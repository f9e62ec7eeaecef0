import shutil
from pathlib import Path

from invoke import task

REPO_ROOT = Path(__file__).resolve().parent


@task
def lint(c):
    c.run("ruff check src tests")


@task
def format_check(c):
    c.run("ruff format --check src tests")


@task
def test(c, match=""):
    selector = f' -k "{match}"' if match else ""
    c.run(f"pytest{selector}")


@task
def clean(_):
    for name in ("judging.db", "exports"):
        path = REPO_ROOT / name
        if path.is_dir():
            shutil.rmtree(path)
        elif path.exists():
            path.unlink()
        else:
            continue
        print(f"Removed {path}")


@task
def ci(c):
    lint(c)
    format_check(c)
    test(c)
