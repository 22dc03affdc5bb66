"""测试共享夹具

所有测试都在 tmp_path 中使用真实的 git 仓库，并隔离用户级 git 与 gwt 配置。
"""

import subprocess
from pathlib import Path

import pytest

from gwt.core.config_manager import ConfigManager
from gwt.core.git_client import GitClient
from gwt.core.layout_manager import WorktreeLayoutManager
from gwt.core.logger import LoggerConfig, configure_logger


def _git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


def _init_repo(path: Path, branch: str = "main") -> Path:
    path.mkdir(parents=True, exist_ok=True)
    _git(path, "init")
    _git(path, "symbolic-ref", "HEAD", f"refs/heads/{branch}")
    _git(path, "config", "user.email", "test@example.com")
    _git(path, "config", "user.name", "Test User")
    (path / "README.md").write_text("# Test Repository\n")
    _git(path, "add", "README.md")
    _git(path, "commit", "-m", "Initial commit")
    return path


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """隔离全局 git 配置、gwt 配置以及仓库查找范围"""
    global_gitconfig = tmp_path / ".gitconfig"
    global_gitconfig.write_text(
        "[user]\n"
        "\temail = test@example.com\n"
        "\tname = Test User\n"
    )
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(global_gitconfig))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path))
    monkeypatch.setenv("GWT_CONFIG", str(tmp_path / "no-such-config.yaml"))
    yield
    # 测试中可能把日志处理器绑定到已关闭的流上
    configure_logger(LoggerConfig())


@pytest.fixture
def git():
    """在指定目录运行 git 并返回标准输出"""
    return _git


@pytest.fixture
def git_repo(tmp_path):
    """包含一次提交的标准仓库：tmp_path/myrepo，主分支 main"""
    return _init_repo(tmp_path / "myrepo")


@pytest.fixture
def config_manager(tmp_path):
    """使用默认值的配置管理器"""
    return ConfigManager(tmp_path / "no-such-config.yaml")


@pytest.fixture
def make_manager(config_manager):
    """创建绑定到指定目录的布局管理器"""
    def _make(cwd: Path) -> WorktreeLayoutManager:
        return WorktreeLayoutManager(GitClient(cwd), config_manager=config_manager, cwd=cwd)
    return _make


@pytest.fixture
def converted_repo(git_repo, make_manager):
    """已转换为 worktree 结构的仓库，返回容器目录"""
    make_manager(git_repo).convert(confirm=lambda message: True)
    return git_repo


@pytest.fixture
def bare_remote(tmp_path, git):
    """本地裸远程仓库 remote.git，包含 main 与 develop，HEAD 指向 develop"""
    source = _init_repo(tmp_path / "source")
    git(source, "checkout", "-b", "develop")
    (source / "DEVELOP.md").write_text("develop\n")
    git(source, "add", "DEVELOP.md")
    git(source, "commit", "-m", "Develop commit")
    git(source, "checkout", "main")

    remote = tmp_path / "remote.git"
    git(tmp_path, "clone", "--bare", str(source), str(remote))
    git(remote, "symbolic-ref", "HEAD", "refs/heads/develop")
    return remote
