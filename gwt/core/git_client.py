"""Git 操作封装类

提供 Git 操作的统一接口，包括 worktree、分支、裸仓库克隆等。
使用 structlog 记录所有操作，git 的错误输出原样保存在异常的 details 中。
"""

import subprocess
from pathlib import Path
from typing import List, Optional

from gwt.core.data_structures import WorktreeEntry
from gwt.core.exceptions import GitCommandError
from gwt.core.interfaces.git import IGitClient
from gwt.core.logger import get_logger


logger = get_logger("git_client")


class GitClient(IGitClient):
    """Git 操作客户端

    提供 Git 命令的统一接口和异常处理。
    """

    def __init__(self, repo_path: Optional[Path] = None, git_executable: str = "git"):
        """初始化 GitClient

        Args:
            repo_path: 默认的命令执行目录，默认为当前目录
            git_executable: git 可执行文件
        """
        self.repo_path = Path(repo_path) if repo_path else Path.cwd()
        self.git_executable = git_executable
        logger.debug("GitClient initialized", repo_path=str(self.repo_path))

    def run_command(
        self,
        cmd: List[str],
        cwd: Optional[Path] = None,
        check: bool = True,
    ) -> str:
        """运行 Git 命令

        Args:
            cmd: 命令列表，以 "git" 开头
            cwd: 工作目录，默认使用 repo_path
            check: 是否在命令失败时抛出异常

        Returns:
            去除首尾空白的标准输出

        Raises:
            GitCommandError: 命令执行失败时抛出
        """
        cwd = cwd or self.repo_path
        if cmd and cmd[0] == "git":
            cmd = [self.git_executable] + cmd[1:]

        logger.debug("Running git command", command=" ".join(cmd), cwd=str(cwd))

        try:
            result = subprocess.run(
                cmd,
                cwd=cwd,
                capture_output=True,
                text=True,
                check=False,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.error("Git command error", command=" ".join(cmd), error=str(e))
            raise GitCommandError(f"Failed to execute git command: {e}") from e

        if check and result.returncode != 0:
            error_msg = (result.stderr or result.stdout).strip()
            logger.debug(
                "Git command failed",
                command=" ".join(cmd),
                return_code=result.returncode,
                error=error_msg,
            )
            raise GitCommandError(
                f"Git command failed: {' '.join(cmd)}",
                details=error_msg,
                return_code=result.returncode,
            )

        output = result.stdout.strip()
        logger.debug("Git command succeeded", output_length=len(output))
        return output

    def get_repo_root(self, cwd: Optional[Path] = None) -> Path:
        """获取当前 worktree 的根目录

        Raises:
            GitCommandError: 不在仓库中时抛出
        """
        root_path = self.run_command(["git", "rev-parse", "--show-toplevel"], cwd=cwd)
        if not root_path:
            # 在裸仓库中 --show-toplevel 成功但没有输出
            raise GitCommandError("Not inside a working tree", details="no top-level directory")
        return Path(root_path).resolve()

    def get_common_dir(self, cwd: Optional[Path] = None) -> Path:
        """获取共享元数据目录

        git 可能返回相对路径，这里统一转换为绝对路径。
        """
        base = Path(cwd or self.repo_path)
        common_dir = self.run_command(["git", "rev-parse", "--git-common-dir"], cwd=base)
        return (base / common_dir).resolve()

    def is_worktree_root(self, path: Path) -> bool:
        """检查目录本身是否为 worktree 的根目录"""
        try:
            toplevel = self.run_command(["git", "rev-parse", "--show-toplevel"], cwd=path)
        except GitCommandError:
            return False
        return bool(toplevel) and Path(toplevel).resolve() == Path(path).resolve()

    def check_branch_exists(self, branch: str, cwd: Optional[Path] = None) -> bool:
        """检查本地分支是否存在"""
        try:
            self.run_command(
                ["git", "show-ref", "--verify", "--quiet", f"refs/heads/{branch}"],
                cwd=cwd,
            )
            return True
        except GitCommandError:
            logger.debug("Local branch does not exist", branch=branch)
            return False

    def add_worktree(
        self,
        path: Path,
        branch: str,
        new_branch: bool = False,
        base: Optional[str] = None,
        cwd: Optional[Path] = None,
    ) -> None:
        """创建 worktree

        Args:
            path: worktree 路径
            branch: 关联的分支名
            new_branch: 是否同时创建新分支
            base: 新分支的起点，默认为 HEAD
            cwd: 执行目录

        Raises:
            GitCommandError: 创建失败时抛出
        """
        if new_branch:
            cmd = ["git", "worktree", "add", "-b", branch, str(path), base or "HEAD"]
        else:
            cmd = ["git", "worktree", "add", str(path), branch]

        self.run_command(cmd, cwd=cwd)
        logger.info("Worktree created", path=str(path), branch=branch, new_branch=new_branch)

    def remove_worktree(self, path: Path, force: bool = False, cwd: Optional[Path] = None) -> None:
        """删除 worktree

        Raises:
            GitCommandError: 删除失败时抛出
        """
        cmd = ["git", "worktree", "remove"]
        if force:
            cmd.append("--force")
        cmd.append(str(path))

        self.run_command(cmd, cwd=cwd)
        logger.info("Worktree removed", path=str(path), force=force)

    def list_worktrees(self, cwd: Optional[Path] = None) -> List[WorktreeEntry]:
        """获取所有 worktree 列表

        Returns:
            按 git 输出顺序排列的 WorktreeEntry 列表
        """
        output = self.run_command(["git", "worktree", "list", "--porcelain"], cwd=cwd)
        worktrees = parse_worktree_porcelain(output)
        logger.debug("Worktree list retrieved", count=len(worktrees))
        return worktrees

    def delete_branch(self, branch: str, force: bool = False, cwd: Optional[Path] = None) -> None:
        """删除分支

        Args:
            branch: 分支名称
            force: 是否强制删除（使用 -D 而不是 -d）

        Raises:
            GitCommandError: 删除失败时抛出，例如分支未合并
        """
        cmd = ["git", "branch", "-D" if force else "-d", branch]
        self.run_command(cmd, cwd=cwd)
        logger.info("Branch deleted", branch=branch, force=force)

    def clone_bare(self, url: str, dest: Path, cwd: Optional[Path] = None) -> None:
        """以裸仓库方式克隆

        相对路径形式的 url 和 dest 都以 cwd 为基准解析，与在该目录执行 git clone 一致。

        Raises:
            GitCommandError: 克隆失败时抛出
        """
        self.run_command(["git", "clone", "--bare", url, str(dest)], cwd=cwd)
        logger.info("Bare repository cloned", url=url, dest=str(dest))

    def get_symbolic_ref(self, ref: str = "HEAD", cwd: Optional[Path] = None) -> Optional[str]:
        """获取符号引用指向的短分支名"""
        try:
            branch = self.run_command(["git", "symbolic-ref", "--short", ref], cwd=cwd)
        except GitCommandError:
            return None
        return branch or None

    def get_branch_list(self, all_branches: bool = False, cwd: Optional[Path] = None) -> List[str]:
        """获取分支列表

        Returns:
            去除当前分支标记后的 git branch 输出行
        """
        cmd = ["git", "branch"]
        if all_branches:
            cmd.append("-a")

        try:
            output = self.run_command(cmd, cwd=cwd)
        except GitCommandError as e:
            logger.warning("Failed to get branch list", error=str(e))
            return []
        return [line.strip().lstrip("*+").strip() for line in output.splitlines() if line.strip()]

    def set_config(self, key: str, value: str, cwd: Optional[Path] = None) -> None:
        """设置仓库配置项"""
        self.run_command(["git", "config", key, value], cwd=cwd)
        logger.debug("Git config set", key=key, value=value)


def parse_worktree_porcelain(output: str) -> List[WorktreeEntry]:
    """解析 git worktree list --porcelain 的输出

    每个 worktree 是一个以空行分隔的块，首行为 "worktree <path>"。
    """
    worktrees: List[WorktreeEntry] = []
    current: Optional[WorktreeEntry] = None

    for line in output.splitlines():
        if not line.strip():
            current = None
            continue

        # 路径中可能包含空格，只按第一个空格拆分
        key, _, value = line.partition(" ")

        if key == "worktree":
            current = WorktreeEntry(path=Path(value))
            worktrees.append(current)
        elif current is None:
            continue
        elif key == "HEAD":
            current.head = value
        elif key == "branch":
            current.branch = value[len("refs/heads/"):] if value.startswith("refs/heads/") else value
        elif key == "bare":
            current.is_bare = True
        elif key == "detached":
            current.is_detached = True
        elif key == "locked":
            current.is_locked = True
        elif key == "prunable":
            current.is_prunable = True

    return worktrees
