from __future__ import annotations

from typing import Generator

import pytest

from flatrepo.backend import NodeType
from flatrepo.config import RepositorySettings
from flatrepo.repository import ZipNodeRepository
from tests.fakes.node_store import InMemorySession


@pytest.fixture()
def settings() -> RepositorySettings:
    """Settings that do not depend on the environment or a .env file."""
    return RepositorySettings(
        _env_file=None,
        log_format="text",
        deploy_prefix="deploy",
        listener_timeout=1.0,
        hide_technical_revisions=True,
    )


@pytest.fixture()
def session() -> InMemorySession:
    """
    Store with a typical layout:

        project1/            revisions 1 (technical), 2 (commented), 3
            rules.xlsx
            sub/leaf.txt
            empty/
            lock             (lock marker)
        project2/            empty, never committed
        readme.txt
        deploy/
            a/b/x.txt
            a/c/
            a/file.txt
            d/y.txt
        lock                 (lock marker)
    """
    session = InMemorySession()
    root = session.root

    project = root.add_folder("project1")
    project.commit(author="system")
    project.add_file("rules.xlsx", b"rules-v1")
    project.commit(author="alice", comment="initial rules")
    sub = project.add_folder("sub", NodeType.FOLDER)
    sub.add_file("leaf.txt", b"leaf")
    project.add_folder("empty", NodeType.FOLDER)
    project.add_lock()
    project.commit(author="bob")

    root.add_folder("project2")
    root.add_file("readme.txt", b"hello")

    deploy = root.add_folder("deploy", NodeType.FOLDER)
    a = deploy.add_folder("a", NodeType.FOLDER)
    a.add_folder("b").add_file("x.txt", b"x")
    a.add_folder("c")
    a.add_file("file.txt", b"f")
    deploy.add_folder("d", NodeType.FOLDER).add_file("y.txt", b"y")

    root.add_lock("lock")
    return session


@pytest.fixture()
def repository(session, settings) -> Generator[ZipNodeRepository, None, None]:
    repo = ZipNodeRepository(session, settings)
    try:
        yield repo
    finally:
        repo.close()
