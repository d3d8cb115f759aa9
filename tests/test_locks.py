from types import SimpleNamespace

import pytest

from mu.errors import AlreadyExistsError, AlreadyLockedError, MultipleLockLabelsError, NotFoundError
from mu.locks import Locker, lock_label

LOCKED_MSG = ":lock: **Plan Failed** This project is currently locked by PR: #2\nRemove lock label if not needed"


class AnError(Exception):
    pass


class FakeGithub:
    def __init__(self, **results):
        self.results = results
        self.calls = []

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)

        def method(*args):
            self.calls.append((name, args))
            result = self.results.get(name)
            if isinstance(result, BaseException):
                raise result
            return result

        return method


def pr(number, labels=()):
    return SimpleNamespace(number=number, labels=[SimpleNamespace(name=n) for n in labels])


def test_lock_label():
    assert lock_label("test") == "mu_lock_test"


def test_lock_success():
    github = FakeGithub(find_pull_request_by_label=NotFoundError())
    Locker(github).lock("test", 1, "plan", "ff0000")
    assert github.calls == [
        ("find_pull_request_by_label", ("mu_lock_test",)),
        ("create_label", ("mu_lock_test", "PR: #1", "ff0000")),
        ("add_pull_request_labels", (1, ["mu_lock_test"])),
    ]


def test_lock_already_held_by_same_pr():
    github = FakeGithub(find_pull_request_by_label=pr(1))
    Locker(github).lock("test", 1, "plan", "ff0000")
    assert github.calls == [("find_pull_request_by_label", ("mu_lock_test",))]


def test_lock_held_by_other_pr():
    github = FakeGithub(find_pull_request_by_label=pr(2))
    with pytest.raises(AlreadyLockedError):
        Locker(github).lock("test", 1, "plan", "ff0000")
    assert github.calls[-1] == ("create_issue_comment", (1, LOCKED_MSG))


def test_lock_find_error():
    github = FakeGithub(find_pull_request_by_label=AnError())
    with pytest.raises(AnError):
        Locker(github).lock("test", 1, "plan", "ff0000")


def test_lock_create_label_error():
    github = FakeGithub(find_pull_request_by_label=NotFoundError(), create_label=AnError())
    with pytest.raises(AnError):
        Locker(github).lock("test", 1, "plan", "ff0000")


def test_lock_add_labels_error():
    github = FakeGithub(find_pull_request_by_label=NotFoundError(), add_pull_request_labels=AnError())
    with pytest.raises(AnError):
        Locker(github).lock("test", 1, "plan", "ff0000")


def test_lock_other_pr_comment_error():
    github = FakeGithub(find_pull_request_by_label=pr(2), create_issue_comment=AnError())
    with pytest.raises(AnError):
        Locker(github).lock("test", 1, "plan", "ff0000")


def test_lock_label_already_exists():
    github = FakeGithub(
        find_pull_request_by_label=NotFoundError(),
        create_label=AlreadyExistsError(),
        get_label=SimpleNamespace(name="mu_lock_test", description="PR: #2"),
    )
    with pytest.raises(AlreadyLockedError):
        Locker(github).lock("test", 1, "plan", "ff0000")
    assert ("get_label", ("mu_lock_test",)) in github.calls
    assert github.calls[-1] == ("create_issue_comment", (1, LOCKED_MSG))


def test_lock_label_already_exists_get_label_error():
    github = FakeGithub(
        find_pull_request_by_label=NotFoundError(),
        create_label=AlreadyExistsError(),
        get_label=AnError(),
    )
    with pytest.raises(AnError):
        Locker(github).lock("test", 1, "plan", "ff0000")


def test_lock_label_already_exists_comment_error():
    github = FakeGithub(
        find_pull_request_by_label=NotFoundError(),
        create_label=AlreadyExistsError(),
        get_label=SimpleNamespace(name="mu_lock_test", description="PR: #2"),
        create_issue_comment=AnError(),
    )
    with pytest.raises(AnError):
        Locker(github).lock("test", 1, "plan", "ff0000")


@pytest.fixture
def repository(monkeypatch):
    monkeypatch.setenv("GITHUB_REPOSITORY", "test/test")


FAILED_UNLOCK = (
    ":x: **Unlock failed**\nMultiple mu_lock_test labels exist.\n\n"
    "https://github.com/test/test/labels/mu_lock_test"
)


def test_unlock_success(repository):
    github = FakeGithub(list_pull_requests_by_label=[])
    Locker(github).unlock("test", pr(1, ["mu_lock_test"]))
    assert github.calls == [
        ("list_pull_requests_by_label", ("mu_lock_test", 2)),
        ("delete_label", ("mu_lock_test",)),
        ("create_issue_comment", (1, ":unlock: Unlocked the `test` project")),
    ]


def test_unlock_without_label(repository):
    github = FakeGithub()
    Locker(github).unlock("test", pr(1, ["mu_lock_test2"]))
    assert github.calls == []


def test_unlock_multiple_labels(repository):
    holders = [pr(1, ["mu_lock_test"]), pr(2, ["mu_lock_test"])]
    github = FakeGithub(list_pull_requests_by_label=holders)
    with pytest.raises(MultipleLockLabelsError):
        Locker(github).unlock("test", pr(1, ["mu_lock_test"]))
    assert github.calls[-1] == ("create_issue_comment", (1, FAILED_UNLOCK))


def test_unlock_list_error(repository):
    github = FakeGithub(list_pull_requests_by_label=AnError())
    with pytest.raises(AnError):
        Locker(github).unlock("test", pr(1, ["mu_lock_test"]))


def test_unlock_multiple_labels_comment_error(repository):
    holders = [pr(1, ["mu_lock_test"]), pr(2, ["mu_lock_test"])]
    github = FakeGithub(list_pull_requests_by_label=holders, create_issue_comment=AnError())
    with pytest.raises(AnError):
        Locker(github).unlock("test", pr(1, ["mu_lock_test"]))


def test_unlock_delete_label_error(repository):
    github = FakeGithub(list_pull_requests_by_label=[], delete_label=AnError())
    with pytest.raises(AnError):
        Locker(github).unlock("test", pr(1, ["mu_lock_test"]))


def test_unlock_comment_error(repository):
    github = FakeGithub(list_pull_requests_by_label=[], create_issue_comment=AnError())
    with pytest.raises(AnError):
        Locker(github).unlock("test", pr(1, ["mu_lock_test"]))
    assert ("delete_label", ("mu_lock_test",)) in github.calls