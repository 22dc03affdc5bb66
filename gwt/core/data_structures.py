"""GWT 核心数据结构定义

定义布局上下文、worktree 条目以及各操作的结果对象。"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional


@dataclass
class WorkspaceContext:
    """一次调用中解析出的仓库布局上下文

    container 是所有同级 worktree 所在的目录，每次调用只解析一次，
    之后作为显式参数传给各操作。
    """
    cwd: Path
    common_dir: Path
    container: Path
    current_worktree: Optional[Path] = None
    bare_dir_name: str = ".bare"

    @property
    def is_worktree_layout(self) -> bool:
        """共享元数据目录中包含 .bare 时视为 worktree 结构"""
        return self.bare_dir_name in self.common_dir.parts

    @property
    def git_cwd(self) -> Path:
        """执行 git 命令的目录：当前 worktree，或在容器目录中时使用裸仓库"""
        return self.current_worktree or self.common_dir

    def worktree_path(self, branch: str) -> Path:
        """分支对应的 worktree 路径：<container>/<branch>"""
        return self.container / branch

    def is_current(self, path: Path) -> bool:
        """判断路径是否为当前所在的 worktree"""
        if self.current_worktree is None:
            return False
        return Path(path).resolve() == self.current_worktree.resolve()


@dataclass
class WorktreeEntry:
    """git worktree list --porcelain 中的一项"""
    path: Path
    head: Optional[str] = None
    branch: Optional[str] = None
    is_bare: bool = False
    is_detached: bool = False
    is_locked: bool = False
    is_prunable: bool = False
    is_current: bool = False

    @property
    def short_head(self) -> str:
        """缩写的提交哈希"""
        return self.head[:7] if self.head else ""

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        return {
            "path": str(self.path),
            "head": self.head,
            "branch": self.branch,
            "is_bare": self.is_bare,
            "is_detached": self.is_detached,
            "is_locked": self.is_locked,
            "is_prunable": self.is_prunable,
            "is_current": self.is_current,
        }


@dataclass
class AddResult:
    """添加 worktree 的结果"""
    path: Path
    branch: str
    created_branch: bool
    base: Optional[str] = None


@dataclass
class RemoveResult:
    """删除 worktree 的结果

    branch_deleted 为 None 表示未请求删除分支。
    """
    path: Path
    branch: str
    branch_deleted: Optional[bool] = None
    branch_error: Optional[str] = None


@dataclass
class ConversionResult:
    """转换为 worktree 结构的结果"""
    repo_root: Path
    bare_dir: Path
    worktree_path: Path
    main_branch: str
    leftover_staging: Optional[Path] = None


@dataclass
class CloneResult:
    """以 worktree 结构克隆的结果"""
    target: Path
    bare_dir: Path
    worktree_path: Path
    main_branch: str
    detected_branch: bool = False
    # symbolic-ref、branch-list 或 fallback
    detection_source: Optional[str] = None
