"""Git 操作相关接口定义

布局管理器只通过该接口访问 git，测试中可以替换为假实现。
"""

from abc import ABC, abstractmethod
from typing import List, Optional
from pathlib import Path

from gwt.core.data_structures import WorktreeEntry


class IGitClient(ABC):
    """Git 客户端接口"""

    @abstractmethod
    def get_repo_root(self, cwd: Optional[Path] = None) -> Path:
        """获取当前 worktree 的根目录"""
        pass

    @abstractmethod
    def get_common_dir(self, cwd: Optional[Path] = None) -> Path:
        """获取共享元数据目录（绝对路径）"""
        pass

    @abstractmethod
    def is_worktree_root(self, path: Path) -> bool:
        """检查目录本身是否为一个 worktree 的根目录"""
        pass

    @abstractmethod
    def check_branch_exists(self, branch: str, cwd: Optional[Path] = None) -> bool:
        """检查本地分支是否存在"""
        pass

    @abstractmethod
    def add_worktree(
        self,
        path: Path,
        branch: str,
        new_branch: bool = False,
        base: Optional[str] = None,
        cwd: Optional[Path] = None,
    ) -> None:
        """创建 worktree，new_branch 为 True 时同时从 base 创建分支"""
        pass

    @abstractmethod
    def remove_worktree(self, path: Path, force: bool = False, cwd: Optional[Path] = None) -> None:
        """删除 worktree"""
        pass

    @abstractmethod
    def list_worktrees(self, cwd: Optional[Path] = None) -> List[WorktreeEntry]:
        """列出所有 worktree"""
        pass

    @abstractmethod
    def delete_branch(self, branch: str, force: bool = False, cwd: Optional[Path] = None) -> None:
        """删除本地分支"""
        pass

    @abstractmethod
    def clone_bare(self, url: str, dest: Path, cwd: Optional[Path] = None) -> None:
        """以裸仓库方式克隆"""
        pass

    @abstractmethod
    def get_symbolic_ref(self, ref: str = "HEAD", cwd: Optional[Path] = None) -> Optional[str]:
        """获取符号引用指向的短分支名，无法解析时返回 None"""
        pass

    @abstractmethod
    def get_branch_list(self, all_branches: bool = False, cwd: Optional[Path] = None) -> List[str]:
        """获取分支列表（git branch 的原始行）"""
        pass

    @abstractmethod
    def set_config(self, key: str, value: str, cwd: Optional[Path] = None) -> None:
        """设置仓库配置项"""
        pass
