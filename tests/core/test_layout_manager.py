"""WorktreeLayoutManager 单元测试

使用 tmp_path 中的真实 git 仓库验证各操作的前置条件与文件系统结果。
"""

from pathlib import Path
from unittest.mock import Mock

import pytest
import yaml

from gwt.core.config_manager import ConfigManager
from gwt.core.exceptions import (
    AlreadyConverted,
    CannotRemoveCurrent,
    ConversionAborted,
    ConversionError,
    GitCommandError,
    GitException,
    InvalidWorktree,
    NotARepository,
    NotConverted,
    TargetExists,
    WorktreeNotFound,
)
from gwt.core.git_client import GitClient
from gwt.core.interfaces.git import IGitClient
from gwt.core.layout_manager import (
    STAGING_PREFIX,
    WorktreeLayoutManager,
    derive_directory_name,
)


def _staging_leftovers(directory: Path):
    return [p for p in directory.iterdir() if p.name.startswith(STAGING_PREFIX)]


def _snapshot(root: Path):
    return sorted(str(p.relative_to(root)) for p in root.rglob("*"))


def _manager_with_config(cwd: Path, config_path: Path, data, git_client=None) -> WorktreeLayoutManager:
    config_path.write_text(yaml.safe_dump(data))
    return WorktreeLayoutManager(
        git_client or GitClient(cwd),
        config_manager=ConfigManager(config_path),
        cwd=cwd,
    )


class TestDeriveDirectoryName:
    """测试从 URL 推导目录名"""

    @pytest.mark.parametrize("url, expected", [
        ("https://github.com/user/repo.git", "repo"),
        ("git@github.com:user/repo.git", "repo"),
        ("https://github.com/user/repo", "repo"),
        ("/srv/git/project.git/", "project"),
        ("remote.git", "remote"),
    ])
    def test_derive(self, url, expected):
        assert derive_directory_name(url) == expected

    @pytest.mark.parametrize("url", ["", ".git", "https://host/.."])
    def test_underivable(self, url):
        with pytest.raises(GitException):
            derive_directory_name(url)


class TestResolveContext:
    """测试布局上下文解析"""

    def test_standard_repository(self, git_repo, make_manager):
        context = make_manager(git_repo).resolve_context()

        assert context.current_worktree == git_repo.resolve()
        assert context.container == git_repo.resolve().parent
        assert context.is_worktree_layout is False

    def test_inside_worktree(self, converted_repo, make_manager):
        context = make_manager(converted_repo / "main").resolve_context()

        assert context.is_worktree_layout is True
        assert context.container == converted_repo.resolve()
        assert context.current_worktree == (converted_repo / "main").resolve()

    def test_from_subdirectory_of_worktree(self, converted_repo, make_manager):
        subdir = converted_repo / "main" / "src"
        subdir.mkdir()

        context = make_manager(subdir).resolve_context()

        assert context.container == converted_repo.resolve()

    def test_from_container(self, converted_repo, make_manager):
        context = make_manager(converted_repo).resolve_context()

        assert context.is_worktree_layout is True
        assert context.current_worktree is None
        assert context.container == converted_repo.resolve()
        assert context.git_cwd == (converted_repo / ".bare").resolve()

    def test_not_a_repository(self, tmp_path, make_manager):
        plain = tmp_path / "plain"
        plain.mkdir()

        with pytest.raises(NotARepository):
            make_manager(plain).resolve_context()


class TestConvert:
    """测试 convert（gwt init）"""

    def test_convert_creates_layout(self, git_repo, make_manager, git, tmp_path):
        (git_repo / "notes.txt").write_text("untracked\n")
        (git_repo / "README.md").write_text("# Modified\n")

        result = make_manager(git_repo).convert(confirm=lambda message: True)

        assert result.bare_dir == git_repo.resolve() / ".bare"
        assert result.worktree_path == git_repo.resolve() / "main"
        assert sorted(p.name for p in git_repo.iterdir()) == [".bare", "main"]
        assert (git_repo / "main" / ".git").is_file()
        assert git(git_repo / "main", "rev-parse", "--abbrev-ref", "HEAD") == "main"
        assert git(git_repo / ".bare", "config", "core.bare") == "true"
        assert _staging_leftovers(tmp_path) == []
        assert result.leftover_staging is None

    def test_convert_preserves_working_files(self, git_repo, make_manager, git):
        (git_repo / "notes.txt").write_text("untracked\n")
        (git_repo / "README.md").write_text("# Modified\n")

        make_manager(git_repo).convert(confirm=lambda message: True)

        worktree = git_repo / "main"
        assert (worktree / "notes.txt").read_text() == "untracked\n"
        assert (worktree / "README.md").read_text() == "# Modified\n"
        status = git(worktree, "status", "--porcelain")
        assert "?? notes.txt" in status
        assert "M README.md" in status

    def test_convert_links_point_to_final_location(self, git_repo, make_manager):
        make_manager(git_repo).convert(confirm=lambda message: True)

        root = git_repo.resolve()
        git_file = (root / "main" / ".git").read_text().strip()
        assert git_file == f"gitdir: {root / '.bare' / 'worktrees' / 'main'}"
        back_link = (root / ".bare" / "worktrees" / "main" / "gitdir").read_text().strip()
        assert back_link == str(root / "main" / ".git")

    def test_convert_with_custom_branch(self, git_repo, make_manager, git):
        git(git_repo, "branch", "-M", "main", "master")

        result = make_manager(git_repo).convert(main_branch="master", confirm=lambda message: True)

        assert result.main_branch == "master"
        assert (git_repo / "master" / "README.md").exists()

    def test_confirm_message_describes_layout(self, git_repo, make_manager):
        confirm = Mock(return_value=True)

        make_manager(git_repo).convert(confirm=confirm)

        message = confirm.call_args[0][0]
        assert "Converting myrepo to worktree structure" in message
        assert str(git_repo.resolve() / ".bare") in message

    def test_declined_confirmation_leaves_repo_untouched(self, git_repo, make_manager, tmp_path):
        with pytest.raises(ConversionAborted):
            make_manager(git_repo).convert(confirm=lambda message: False)

        assert (git_repo / ".git").is_dir()
        assert not (git_repo / ".bare").exists()
        assert _staging_leftovers(tmp_path) == []

    def test_build_failure_leaves_repo_untouched(self, git_repo, make_manager, tmp_path):
        with pytest.raises(ConversionError) as exc_info:
            make_manager(git_repo).convert(main_branch="missing", confirm=lambda message: True)

        assert "untouched" in exc_info.value.message
        assert exc_info.value.details
        assert (git_repo / ".git").is_dir()
        assert (git_repo / "README.md").exists()
        assert not (git_repo / ".bare").exists()
        assert not (git_repo / "missing").exists()
        assert _staging_leftovers(tmp_path) == []

    def test_commit_failure_restores_original(self, git_repo, make_manager, tmp_path, git):
        manager = make_manager(git_repo)
        manager.relink_worktree = Mock(side_effect=OSError("disk full"))

        with pytest.raises(ConversionError) as exc_info:
            manager.convert(confirm=lambda message: True)

        assert "restored" in exc_info.value.message
        assert sorted(p.name for p in git_repo.iterdir()) == [".git", "README.md"]
        assert git(git_repo, "rev-parse", "--abbrev-ref", "HEAD") == "main"
        assert _staging_leftovers(tmp_path) == []

    @pytest.mark.parametrize("start", ["main", "."])
    def test_second_convert_changes_nothing(self, converted_repo, make_manager, tmp_path, start):
        before = _snapshot(converted_repo)
        assert ".bare/worktrees/main" in before
        confirm = Mock(return_value=True)

        with pytest.raises(AlreadyConverted):
            make_manager(converted_repo / start).convert(confirm=confirm)

        confirm.assert_not_called()
        assert _snapshot(converted_repo) == before
        assert _staging_leftovers(tmp_path) == []

    def test_not_a_repository(self, tmp_path, make_manager):
        plain = tmp_path / "plain"
        plain.mkdir()

        with pytest.raises(NotARepository):
            make_manager(plain).convert(confirm=lambda message: True)

    def test_staging_dir_inside_repo_rejected(self, git_repo, tmp_path):
        manager = _manager_with_config(
            git_repo, tmp_path / "gwt.yaml", {"convert": {"staging_dir": str(git_repo / "tmp")}}
        )

        with pytest.raises(ConversionError):
            manager.convert(confirm=lambda message: True)

        assert (git_repo / ".git").is_dir()

    def test_progress_messages(self, git_repo, make_manager):
        messages = []

        make_manager(git_repo).convert(confirm=lambda message: True, progress=messages.append)

        assert "Creating main worktree..." in messages
        assert "Moving new structure into place..." in messages


class TestAddWorktree:
    """测试 add_worktree（gwt add）"""

    def test_add_new_branch(self, converted_repo, make_manager, git):
        result = make_manager(converted_repo / "main").add_worktree("feature-x")

        assert result.created_branch is True
        assert result.base == "HEAD"
        assert result.path == converted_repo.resolve() / "feature-x"
        assert git(result.path, "rev-parse", "--abbrev-ref", "HEAD") == "feature-x"

    def test_add_existing_branch(self, converted_repo, make_manager, git):
        git(converted_repo / "main", "branch", "existing")

        result = make_manager(converted_repo / "main").add_worktree("existing", base="ignored")

        assert result.created_branch is False
        assert git(result.path, "rev-parse", "--abbrev-ref", "HEAD") == "existing"

    def test_add_from_base(self, converted_repo, make_manager, git):
        main = converted_repo / "main"
        main_head = git(main, "rev-parse", "HEAD")
        (main / "extra.txt").write_text("x\n")
        git(main, "add", "extra.txt")
        git(main, "commit", "-m", "Extra")

        result = make_manager(main).add_worktree("from-old", base=main_head)

        assert git(result.path, "rev-parse", "HEAD") == main_head

    def test_add_from_container(self, converted_repo, make_manager):
        result = make_manager(converted_repo).add_worktree("feature-y")

        assert (converted_repo / "feature-y" / "README.md").exists()
        assert result.created_branch is True

    def test_target_exists(self, converted_repo, make_manager):
        (converted_repo / "occupied").mkdir()

        with pytest.raises(TargetExists):
            make_manager(converted_repo / "main").add_worktree("occupied")

    def test_add_twice(self, converted_repo, make_manager):
        manager = make_manager(converted_repo / "main")
        manager.add_worktree("feature-x")

        with pytest.raises(TargetExists):
            manager.add_worktree("feature-x")

    def test_not_converted(self, git_repo, make_manager):
        with pytest.raises(NotConverted) as exc_info:
            make_manager(git_repo).add_worktree("feature-x")

        assert "gwt init" in exc_info.value.details

    def test_invalid_base_passes_git_error_through(self, converted_repo, make_manager):
        with pytest.raises(GitCommandError) as exc_info:
            make_manager(converted_repo / "main").add_worktree("feature-x", base="no-such-ref")

        assert exc_info.value.details


class TestRemoveWorktree:
    """测试 remove_worktree（gwt rm）"""

    @pytest.fixture
    def with_feature(self, converted_repo, make_manager):
        make_manager(converted_repo / "main").add_worktree("feature-x")
        return converted_repo

    def test_remove_keeps_branch(self, with_feature, make_manager, git):
        result = make_manager(with_feature / "main").remove_worktree("feature-x")

        assert not (with_feature / "feature-x").exists()
        assert result.branch_deleted is None
        assert "feature-x" in git(with_feature / "main", "branch", "--list", "feature-x")

    def test_remove_and_delete_merged_branch(self, with_feature, make_manager, git):
        result = make_manager(with_feature / "main").remove_worktree("feature-x", delete_branch=True)

        assert result.branch_deleted is True
        assert git(with_feature / "main", "branch", "--list", "feature-x") == ""

    def test_unmerged_branch_deletion_is_not_fatal(self, with_feature, make_manager, git):
        feature = with_feature / "feature-x"
        (feature / "work.txt").write_text("wip\n")
        git(feature, "add", "work.txt")
        git(feature, "commit", "-m", "Work in progress")

        result = make_manager(with_feature / "main").remove_worktree("feature-x", delete_branch=True)

        assert not feature.exists()
        assert result.branch_deleted is False
        assert "not fully merged" in result.branch_error
        assert "feature-x" in git(with_feature / "main", "branch", "--list", "feature-x")

    def test_force_delete_unmerged_branch(self, with_feature, make_manager, git):
        feature = with_feature / "feature-x"
        (feature / "work.txt").write_text("wip\n")
        git(feature, "add", "work.txt")
        git(feature, "commit", "-m", "Work in progress")

        result = make_manager(with_feature / "main").remove_worktree("feature-x", force_delete=True)

        assert result.branch_deleted is True
        assert git(with_feature / "main", "branch", "--list", "feature-x") == ""

    def test_dirty_worktree_requires_force(self, with_feature, make_manager):
        (with_feature / "feature-x" / "scratch.txt").write_text("dirty\n")
        manager = make_manager(with_feature / "main")

        with pytest.raises(GitCommandError):
            manager.remove_worktree("feature-x")
        assert (with_feature / "feature-x").exists()

        manager.remove_worktree("feature-x", force=True)
        assert not (with_feature / "feature-x").exists()

    def test_cannot_remove_current(self, with_feature, make_manager):
        with pytest.raises(CannotRemoveCurrent):
            make_manager(with_feature / "feature-x").remove_worktree("feature-x")

        assert (with_feature / "feature-x").exists()

    def test_not_found(self, with_feature, make_manager):
        with pytest.raises(WorktreeNotFound):
            make_manager(with_feature / "main").remove_worktree("nope")

    def test_stray_directory_is_not_a_worktree(self, with_feature, make_manager):
        (with_feature / "stray").mkdir()

        with pytest.raises(WorktreeNotFound):
            make_manager(with_feature / "main").remove_worktree("stray")

        assert (with_feature / "stray").exists()

    def test_remove_from_container(self, with_feature, make_manager):
        make_manager(with_feature).remove_worktree("feature-x")

        assert not (with_feature / "feature-x").exists()


class TestListWorktrees:
    """测试 list_worktrees（gwt list）"""

    def test_convert_then_list(self, git_repo, make_manager):
        make_manager(git_repo).convert(confirm=lambda message: True)

        entries = make_manager(git_repo / "main").list_worktrees()

        assert [entry.branch for entry in entries] == ["main"]
        assert entries[0].path.resolve() == (git_repo / "main").resolve()

    def test_list_marks_current(self, converted_repo, make_manager):
        make_manager(converted_repo / "main").add_worktree("feature-x")

        entries = make_manager(converted_repo / "main").list_worktrees()

        by_branch = {entry.branch: entry for entry in entries}
        assert set(by_branch) == {"main", "feature-x"}
        assert by_branch["main"].is_current is True
        assert by_branch["feature-x"].is_current is False
        assert all(not entry.is_bare for entry in entries)

    def test_list_includes_bare_when_asked(self, converted_repo, make_manager):
        entries = make_manager(converted_repo / "main").list_worktrees(include_bare=True)

        bare = [entry for entry in entries if entry.is_bare]
        assert len(bare) == 1
        assert bare[0].path.resolve() == (converted_repo / ".bare").resolve()

    def test_list_standard_repository(self, git_repo, make_manager):
        entries = make_manager(git_repo).list_worktrees()

        assert len(entries) == 1
        assert entries[0].branch == "main"
        assert entries[0].is_current is True


class TestResolveWorktreePath:
    """测试 resolve_worktree_path（gwt cd）"""

    def test_resolve_sibling(self, converted_repo, make_manager):
        make_manager(converted_repo / "main").add_worktree("feature-x")

        path = make_manager(converted_repo / "main").resolve_worktree_path("feature-x")

        assert path == (converted_repo / "feature-x").resolve()

    def test_resolve_from_container(self, converted_repo, make_manager):
        path = make_manager(converted_repo).resolve_worktree_path("main")

        assert path == (converted_repo / "main").resolve()

    def test_missing_directory(self, converted_repo, make_manager):
        with pytest.raises(WorktreeNotFound):
            make_manager(converted_repo / "main").resolve_worktree_path("nope")

    def test_directory_that_is_not_a_worktree(self, converted_repo, make_manager):
        (converted_repo / "stray").mkdir()

        with pytest.raises(InvalidWorktree):
            make_manager(converted_repo / "main").resolve_worktree_path("stray")

    def test_subdirectory_of_worktree_is_not_a_worktree_root(self, converted_repo, make_manager):
        (converted_repo / "main" / "src").mkdir()

        with pytest.raises(InvalidWorktree):
            make_manager(converted_repo).resolve_worktree_path("main/src")


class TestCloneWithLayout:
    """测试 clone_with_layout（gwt clone）"""

    @pytest.fixture
    def workdir(self, tmp_path):
        path = tmp_path / "work"
        path.mkdir()
        return path

    def test_clone_detects_default_branch(self, bare_remote, workdir, make_manager, git):
        result = make_manager(workdir).clone_with_layout(str(bare_remote))

        assert result.target == workdir.resolve() / "remote"
        assert result.main_branch == "develop"
        assert result.detected_branch is True
        assert result.detection_source == "symbolic-ref"
        assert (workdir / "remote" / ".bare").is_dir()
        assert (workdir / "remote" / "develop" / "DEVELOP.md").exists()
        assert git(result.worktree_path, "rev-parse", "--abbrev-ref", "HEAD") == "develop"

    def test_clone_with_directory_and_branch(self, bare_remote, workdir, make_manager):
        result = make_manager(workdir).clone_with_layout(str(bare_remote), "proj", "main")

        assert result.detected_branch is False
        assert result.worktree_path == workdir.resolve() / "proj" / "main"
        assert (workdir / "proj" / "main" / "README.md").exists()
        assert not (workdir / "proj" / "main" / "DEVELOP.md").exists()

    def test_cloned_layout_supports_add(self, bare_remote, workdir, make_manager):
        result = make_manager(workdir).clone_with_layout(str(bare_remote))

        added = make_manager(result.worktree_path).add_worktree("feature-x")

        assert added.path == (workdir / "remote" / "feature-x").resolve()

    def test_target_exists(self, bare_remote, workdir, make_manager):
        existing = workdir / "remote"
        existing.mkdir()
        (existing / "keep.txt").write_text("keep\n")

        with pytest.raises(TargetExists):
            make_manager(workdir).clone_with_layout(str(bare_remote))

        assert (existing / "keep.txt").exists()

    def test_relative_url_resolves_from_caller_directory(self, bare_remote, workdir, make_manager):
        assert bare_remote.parent == workdir.parent

        result = make_manager(workdir).clone_with_layout("../remote.git")

        assert result.target == workdir.resolve() / "remote"
        assert result.main_branch == "develop"
        assert (workdir / "remote" / "develop" / "DEVELOP.md").exists()

    def test_bad_url_leaves_nothing_behind(self, tmp_path, workdir, make_manager):
        with pytest.raises(GitCommandError) as exc_info:
            make_manager(workdir).clone_with_layout(str(tmp_path / "missing.git"))

        assert exc_info.value.message == "Failed to clone repository"
        assert not (workdir / "missing").exists()

    def test_missing_branch_leaves_nothing_behind(self, bare_remote, workdir, make_manager):
        with pytest.raises(GitCommandError) as exc_info:
            make_manager(workdir).clone_with_layout(str(bare_remote), main_branch="no-such-branch")

        assert exc_info.value.message == "Failed to create main worktree"
        assert "git -C" in exc_info.value.details
        assert not (workdir / "remote").exists()

    def test_empty_url(self, workdir, make_manager):
        with pytest.raises(GitException):
            make_manager(workdir).clone_with_layout("  ")


class TestDetectDefaultBranch:
    """测试默认分支检测的回退顺序"""

    @pytest.fixture
    def git_client(self):
        client = Mock(spec=IGitClient)
        client.get_symbolic_ref.return_value = None
        client.get_branch_list.return_value = []
        return client

    def test_symbolic_ref(self, git_client, config_manager, tmp_path):
        git_client.get_symbolic_ref.return_value = "trunk"
        manager = WorktreeLayoutManager(git_client, config_manager, cwd=tmp_path)

        assert manager.detect_default_branch(tmp_path) == ("trunk", "symbolic-ref")

    def test_branch_list(self, git_client, config_manager, tmp_path):
        git_client.get_branch_list.return_value = [
            "main",
            "remotes/origin/HEAD -> origin/release",
        ]
        manager = WorktreeLayoutManager(git_client, config_manager, cwd=tmp_path)

        assert manager.detect_default_branch(tmp_path) == ("release", "branch-list")

    def test_fallback(self, git_client, tmp_path):
        manager = _manager_with_config(
            tmp_path, tmp_path / "gwt.yaml", {"clone": {"fallback_branch": "master"}}, git_client
        )

        assert manager.detect_default_branch(tmp_path) == ("master", "fallback")
