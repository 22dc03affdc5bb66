"""Worktree 布局管理器

把 worktree 生命周期操作翻译成一系列 git 子进程调用和文件系统移动：

    <root>/.bare/        共享的裸仓库
    <root>/<branch>/     每个分支一个 worktree

所有操作都是同步的；前置条件不满足时抛出 GWTException 的子类，
git 自身的失败以 GitCommandError 原样透传。
"""

import re
import shutil
import tempfile
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from gwt.core.config_manager import ConfigManager
from gwt.core.data_structures import (
    AddResult,
    CloneResult,
    ConversionResult,
    RemoveResult,
    WorkspaceContext,
    WorktreeEntry,
)
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
    TransactionRollbackError,
    WorktreeNotFound,
)
from gwt.core.interfaces.git import IGitClient
from gwt.core.logger import OperationScope, get_logger
from gwt.core.operations import CreateDirectoryOperation, MovePathOperation
from gwt.core.transaction import Transaction

logger = get_logger("layout_manager")


ConfirmCallback = Callable[[str], bool]
ProgressCallback = Callable[[str], None]

STAGING_PREFIX = ".gwt-convert-"


def _no_progress(message: str) -> None:
    pass


def derive_directory_name(repo_url: str) -> str:
    """从仓库 URL 推导目录名，行为与 basename -s .git 一致

    https://github.com/user/repo.git -> repo
    git@github.com:user/repo.git     -> repo
    /path/to/repo/                   -> repo
    """
    stripped = repo_url.strip().rstrip("/\\")
    name = re.split(r"[/\\:]", stripped)[-1] if stripped else ""
    if name.endswith(".git"):
        name = name[:-len(".git")]
    if not name or name in (".", ".."):
        raise GitException(f"Cannot derive a directory name from '{repo_url}'")
    return name


class WorktreeLayoutManager:
    """Worktree 布局管理器

    git 只通过 IGitClient 访问；交互确认通过回调注入，
    因此核心逻辑可以脱离终端测试。
    """

    def __init__(
        self,
        git_client: IGitClient,
        config_manager: Optional[ConfigManager] = None,
        cwd: Optional[Path] = None,
    ):
        """初始化布局管理器

        Args:
            git_client: git 能力接口
            config_manager: 配置管理器，默认加载用户配置
            cwd: 调用发生的目录，默认为当前目录
        """
        self.git_client = git_client
        self.config_manager = config_manager or ConfigManager()
        self.cwd = Path(cwd).resolve() if cwd else Path.cwd().resolve()
        self.bare_dir_name = self.config_manager.get("layout.bare_dir", ".bare")

    # ------------------------------------------------------------------
    # 上下文解析
    # ------------------------------------------------------------------

    def find_layout_root(self, path: Path) -> Optional[Path]:
        """如果 path 是容器目录（含 .bare）或裸仓库本身，返回容器目录"""
        path = Path(path)
        bare_dir = path / self.bare_dir_name
        if bare_dir.is_dir() and (bare_dir / "HEAD").is_file():
            return path
        if path.name == self.bare_dir_name and (path / "HEAD").is_file():
            return path.parent
        return None

    def resolve_context(self) -> WorkspaceContext:
        """解析当前调用的布局上下文

        Raises:
            NotARepository: 当前目录既不在仓库中，也不是 worktree 容器
        """
        layout_root = self.find_layout_root(self.cwd)
        if layout_root is not None:
            context = WorkspaceContext(
                cwd=self.cwd,
                common_dir=(layout_root / self.bare_dir_name).resolve(),
                container=layout_root.resolve(),
                current_worktree=None,
                bare_dir_name=self.bare_dir_name,
            )
            logger.debug("Context resolved from layout container", container=str(context.container))
            return context

        try:
            current_worktree = self.git_client.get_repo_root(cwd=self.cwd)
            common_dir = self.git_client.get_common_dir(cwd=self.cwd)
        except GitCommandError as e:
            raise NotARepository(self.cwd, details=e.details) from e

        context = WorkspaceContext(
            cwd=self.cwd,
            common_dir=common_dir,
            container=current_worktree.parent,
            current_worktree=current_worktree,
            bare_dir_name=self.bare_dir_name,
        )
        logger.debug(
            "Context resolved",
            current_worktree=str(current_worktree),
            common_dir=str(common_dir),
            worktree_layout=context.is_worktree_layout,
        )
        return context

    # ------------------------------------------------------------------
    # gwt init
    # ------------------------------------------------------------------

    def convert(
        self,
        confirm: ConfirmCallback,
        main_branch: Optional[str] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> ConversionResult:
        """把标准仓库就地转换为 worktree 结构

        在临时目录中构建完整的新结构，原仓库在此之前保持不变。
        提交阶段是一组 rename：原有内容先移入临时目录，新结构移入仓库根目录，
        任一步失败都按逆序移回；原有内容只在新结构就位后才删除。

        Args:
            confirm: 确认回调，返回 False 时不做任何修改
            main_branch: 初始 worktree 的分支名，默认取 layout.default_main_branch
            progress: 进度消息回调

        Raises:
            NotARepository: 不在仓库中
            AlreadyConverted: 已经是 worktree 结构
            ConversionAborted: 用户拒绝
            ConversionError: 构建或提交阶段失败
        """
        main_branch = main_branch or self.config_manager.get("layout.default_main_branch", "main")
        progress = progress or _no_progress

        with OperationScope("convert", {"main_branch": main_branch}, logger=logger):
            context = self.resolve_context()
            if context.is_worktree_layout or context.current_worktree is None:
                raise AlreadyConverted("Repository already using worktree structure")

            repo_root = context.current_worktree
            git_dir = repo_root / ".git"
            if not git_dir.is_dir():
                raise ConversionError(
                    f"{repo_root} is a linked worktree; convert its main repository instead",
                    details=f"common dir: {context.common_dir}",
                )

            message = (
                f"Converting {repo_root.name} to worktree structure...\n"
                f"  Current location: {repo_root}\n"
                f"  New structure: {repo_root / self.bare_dir_name}/ + {repo_root / main_branch}/\n"
                f"Continue?"
            )
            if not confirm(message):
                logger.info("Conversion declined by user", repo_root=str(repo_root))
                raise ConversionAborted("Aborted.")

            staging = self._create_staging_dir(repo_root)
            build_dir = staging / "build"
            retired_dir = staging / "retired"

            try:
                progress("Building new structure in temporary location...")
                self._build_layout(repo_root, build_dir, main_branch, progress)
            except (GitCommandError, OSError) as e:
                shutil.rmtree(staging, ignore_errors=True)
                details = e.details if isinstance(e, GitCommandError) else str(e)
                raise ConversionError(
                    "Failed to build the worktree structure; repository left untouched",
                    details=details,
                ) from e

            progress("Moving new structure into place...")
            self._commit_layout(repo_root, build_dir, retired_dir, main_branch, staging)

            leftover = None
            try:
                shutil.rmtree(staging)
            except OSError as e:
                leftover = staging
                logger.warning("Failed to remove staging directory", path=str(staging), error=str(e))

            return ConversionResult(
                repo_root=repo_root,
                bare_dir=repo_root / self.bare_dir_name,
                worktree_path=repo_root / main_branch,
                main_branch=main_branch,
                leftover_staging=leftover,
            )

    def _create_staging_dir(self, repo_root: Path) -> Path:
        """在仓库旁边创建私有临时目录，保证提交阶段的 rename 在同一文件系统内"""
        configured = self.config_manager.get("convert.staging_dir")
        parent = Path(configured).expanduser().resolve() if configured else repo_root.parent

        if parent == repo_root or repo_root in parent.parents:
            raise ConversionError(
                f"Staging directory {parent} must be outside the repository {repo_root}"
            )

        try:
            staging = Path(tempfile.mkdtemp(prefix=f"{STAGING_PREFIX}{repo_root.name}-", dir=parent))
        except OSError as e:
            raise ConversionError(f"Cannot create staging directory in {parent}", details=str(e)) from e

        logger.debug("Staging directory created", path=str(staging))
        return staging

    def _build_layout(
        self,
        repo_root: Path,
        build_dir: Path,
        main_branch: str,
        progress: ProgressCallback,
    ) -> None:
        """在 build_dir 中构建 .bare 和初始 worktree，原仓库只读"""
        staged_bare = build_dir / self.bare_dir_name
        staged_worktree = build_dir / main_branch

        # 复制而不是移动，构建失败时原仓库不受影响
        shutil.copytree(repo_root / ".git", staged_bare, symlinks=True)
        self.git_client.set_config("core.bare", "true", cwd=staged_bare)
        shutil.rmtree(staged_bare / "worktrees", ignore_errors=True)

        progress("Creating main worktree...")
        self.git_client.add_worktree(staged_worktree, main_branch, cwd=staged_bare)

        progress("Copying files...")
        shutil.copytree(
            repo_root,
            staged_worktree,
            symlinks=True,
            ignore=shutil.ignore_patterns(".git"),
            dirs_exist_ok=True,
        )

    def _commit_layout(
        self,
        repo_root: Path,
        build_dir: Path,
        retired_dir: Path,
        main_branch: str,
        staging: Path,
    ) -> None:
        """把构建好的结构换入仓库根目录，失败时恢复原状"""
        bare_dir = repo_root / self.bare_dir_name
        worktree_top = Path(main_branch).parts[0]

        tx = Transaction(logger=logger)
        for entry in sorted(repo_root.iterdir()):
            tx.add_operation(MovePathOperation(entry, retired_dir / entry.name, logger=logger))
        tx.add_operation(MovePathOperation(build_dir / self.bare_dir_name, bare_dir, logger=logger))
        tx.add_operation(MovePathOperation(build_dir / worktree_top, repo_root / worktree_top, logger=logger))
        tx.add_operation(
            execute_fn=lambda: self.relink_worktree(bare_dir, repo_root / main_branch),
            description="Update worktree links",
        )

        try:
            tx.commit()
        except TransactionRollbackError as e:
            if tx.is_rolled_back():
                shutil.rmtree(staging, ignore_errors=True)
                raise ConversionError(
                    "Failed to move the new structure into place; original repository restored",
                    details=str(e.__cause__ or e),
                ) from e
            raise ConversionError(
                f"Conversion failed and could not be rolled back; original files are in {retired_dir}",
                details=str(e),
            ) from e

    def relink_worktree(self, bare_dir: Path, worktree_path: Path) -> None:
        """修正 worktree 与裸仓库之间的双向链接

        两个链接都是在临时目录中写入的，移动后需要指向新位置。
        """
        git_file = worktree_path / ".git"
        content = git_file.read_text(encoding="utf-8").strip()
        if not content.startswith("gitdir:"):
            raise ConversionError(f"Unexpected content in {git_file}", details=content)

        admin_name = Path(content[len("gitdir:"):].strip()).name
        admin_dir = bare_dir / "worktrees" / admin_name
        if not admin_dir.is_dir():
            raise ConversionError(f"Worktree metadata not found: {admin_dir}")

        git_file.write_text(f"gitdir: {admin_dir}\n", encoding="utf-8")
        (admin_dir / "gitdir").write_text(f"{git_file}\n", encoding="utf-8")
        logger.info("Worktree links updated", worktree=str(worktree_path), admin_dir=str(admin_dir))

    # ------------------------------------------------------------------
    # gwt add
    # ------------------------------------------------------------------

    def add_worktree(self, branch: str, base: Optional[str] = None) -> AddResult:
        """创建新的 worktree

        分支已存在时直接检出（忽略 base），否则从 base 创建新分支，二者只执行其一。

        Raises:
            NotARepository: 不在仓库中
            NotConverted: 仓库不是 worktree 结构
            TargetExists: 目标目录已存在
            GitCommandError: git 失败（例如 base 无效）
        """
        with OperationScope("add_worktree", {"branch": branch, "base": base}, logger=logger):
            context = self.resolve_context()
            if not context.is_worktree_layout:
                raise NotConverted(
                    "Not in a worktree-based repository",
                    details="Run 'gwt init' first to convert this repository",
                )

            target = context.worktree_path(branch)
            if target.exists():
                raise TargetExists(target)

            if self.git_client.check_branch_exists(branch, cwd=context.git_cwd):
                self.git_client.add_worktree(target, branch, cwd=context.git_cwd)
                return AddResult(path=target, branch=branch, created_branch=False)

            start_point = base or "HEAD"
            self.git_client.add_worktree(
                target, branch, new_branch=True, base=start_point, cwd=context.git_cwd
            )
            return AddResult(path=target, branch=branch, created_branch=True, base=start_point)

    # ------------------------------------------------------------------
    # gwt rm
    # ------------------------------------------------------------------

    def remove_worktree(
        self,
        branch: str,
        delete_branch: bool = False,
        force_delete: bool = False,
        force: bool = False,
    ) -> RemoveResult:
        """删除 worktree，可选删除分支

        分支删除失败不算致命错误，只记录在结果中。

        Args:
            branch: 分支名（即 worktree 目录名）
            delete_branch: 是否用 git branch -d 删除分支
            force_delete: 是否用 git branch -D 强制删除分支
            force: 是否强制删除有改动的 worktree

        Raises:
            NotARepository: 不在仓库中
            CannotRemoveCurrent: 目标是当前所在的 worktree
            WorktreeNotFound: worktree 列表中没有目标
            GitCommandError: git worktree remove 失败
        """
        scope_context = {"branch": branch, "delete_branch": delete_branch or force_delete}
        with OperationScope("remove_worktree", scope_context, logger=logger):
            context = self.resolve_context()
            target = context.worktree_path(branch)

            if context.is_current(target):
                raise CannotRemoveCurrent(
                    "Cannot remove current worktree",
                    details="Please switch to a different worktree first",
                )

            entries = self.git_client.list_worktrees(cwd=context.git_cwd)
            resolved_target = target.resolve()
            if not any(not e.is_bare and e.path.resolve() == resolved_target for e in entries):
                raise WorktreeNotFound(branch)

            self.git_client.remove_worktree(target, force=force, cwd=context.git_cwd)
            result = RemoveResult(path=target, branch=branch)

            if delete_branch or force_delete:
                try:
                    self.git_client.delete_branch(branch, force=force_delete, cwd=context.git_cwd)
                    result.branch_deleted = True
                except GitCommandError as e:
                    result.branch_deleted = False
                    result.branch_error = e.details or e.message
                    logger.warning("Branch not deleted", branch=branch, error=result.branch_error)

            return result

    # ------------------------------------------------------------------
    # gwt list
    # ------------------------------------------------------------------

    def list_worktrees(self, include_bare: bool = False) -> List[WorktreeEntry]:
        """列出所有 worktree（只读）"""
        with OperationScope("list_worktrees", logger=logger):
            context = self.resolve_context()
            entries = self.git_client.list_worktrees(cwd=context.git_cwd)
            for entry in entries:
                entry.is_current = context.is_current(entry.path)
            if not include_bare:
                entries = [e for e in entries if not e.is_bare]
            return entries

    # ------------------------------------------------------------------
    # gwt cd
    # ------------------------------------------------------------------

    def resolve_worktree_path(self, branch: str) -> Path:
        """计算分支对应 worktree 的绝对路径

        只返回路径，不改变任何进程的工作目录。

        Raises:
            NotARepository: 不在仓库中
            WorktreeNotFound: 目录不存在
            InvalidWorktree: 目录存在但不是 worktree
        """
        context = self.resolve_context()
        target = context.worktree_path(branch)

        if not target.is_dir():
            raise WorktreeNotFound(branch)
        if not self.git_client.is_worktree_root(target):
            raise InvalidWorktree(target)

        return target.resolve()

    # ------------------------------------------------------------------
    # gwt clone
    # ------------------------------------------------------------------

    def clone_with_layout(
        self,
        repo_url: str,
        directory: Optional[str] = None,
        main_branch: Optional[str] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> CloneResult:
        """以 worktree 结构克隆仓库

        目录创建之后的任何失败都会删除整个目标目录。

        Raises:
            TargetExists: 目标目录已存在
            GitCommandError: 克隆或创建 worktree 失败
        """
        progress = progress or _no_progress
        if not repo_url or not repo_url.strip():
            raise GitException("Repository URL must not be empty")

        target = self.cwd / (directory or derive_directory_name(repo_url))
        bare_dir = target / self.bare_dir_name

        with OperationScope("clone_with_layout", {"url": repo_url, "target": str(target)}, logger=logger):
            if target.exists():
                raise TargetExists(target)

            state: Dict[str, Optional[str]] = {"branch": main_branch, "source": None}

            def clone_bare() -> None:
                progress(f"Cloning {repo_url} as worktree structure...")
                try:
                    self.git_client.clone_bare(repo_url, bare_dir, cwd=self.cwd)
                except GitCommandError as e:
                    raise GitCommandError("Failed to clone repository", details=e.details) from e

            def detect_branch() -> None:
                if not state["branch"]:
                    state["branch"], state["source"] = self.detect_default_branch(bare_dir)
                    progress(f"Detected default branch: {state['branch']}")

            def create_worktree() -> None:
                progress("Creating main worktree...")
                branch = state["branch"]
                try:
                    self.git_client.add_worktree(target / branch, branch, cwd=bare_dir)
                except GitCommandError as e:
                    tip = f"Tip: Check if branch '{branch}' exists with: git -C {bare_dir} branch -a"
                    raise GitCommandError(
                        "Failed to create main worktree",
                        details=f"{e.details}\n{tip}" if e.details else tip,
                    ) from e

            tx = Transaction(logger=logger)
            tx.add_operation(CreateDirectoryOperation(target, logger=logger))
            tx.add_operation(execute_fn=clone_bare, description="Clone bare repository")
            tx.add_operation(execute_fn=detect_branch, description="Detect default branch")
            tx.add_operation(execute_fn=create_worktree, description="Create main worktree")

            try:
                tx.commit()
            except TransactionRollbackError as e:
                cause = e.__cause__
                if tx.is_rolled_back() and isinstance(cause, (GitCommandError, OSError)):
                    if isinstance(cause, OSError):
                        raise GitException(f"Cannot create {target}", details=str(cause)) from cause
                    raise cause
                raise GitException(
                    f"Clone failed and {target} could not be cleaned up",
                    details=str(e),
                ) from e

            branch = state["branch"]
            return CloneResult(
                target=target,
                bare_dir=bare_dir,
                worktree_path=target / branch,
                main_branch=branch,
                detected_branch=main_branch is None,
                detection_source=state["source"],
            )

    def detect_default_branch(self, bare_dir: Path) -> Tuple[str, str]:
        """检测裸仓库的默认分支

        依次尝试 HEAD 符号引用、git branch -a 中的 "HEAD -> origin/x"、配置的回退分支。

        Returns:
            (分支名, 来源) 元组，来源为 symbolic-ref、branch-list 或 fallback
        """
        branch = self.git_client.get_symbolic_ref("HEAD", cwd=bare_dir)
        if branch:
            return branch, "symbolic-ref"

        for line in self.git_client.get_branch_list(all_branches=True, cwd=bare_dir):
            if "HEAD -> " not in line:
                continue
            ref = line.split("HEAD -> ", 1)[1].strip()
            candidate = ref.split("/", 1)[1] if "/" in ref else ref
            if candidate:
                return candidate, "branch-list"

        fallback = self.config_manager.get("clone.fallback_branch", "main")
        logger.warning("Default branch not detected, using fallback", branch=fallback)
        return fallback, "fallback"
