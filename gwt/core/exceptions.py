"""GWT 异常体系"""


class GWTException(Exception):
    """基础异常类"""
    def __init__(self, message: str, details: str = None):
        self.message = message
        self.details = details
        super().__init__(self.message)


# 仓库布局相关异常
class RepositoryException(GWTException):
    """仓库布局异常"""
    pass


class NotARepository(RepositoryException):
    """当前目录不是 Git 仓库"""
    def __init__(self, path=None, details: str = None):
        self.path = path
        super().__init__("Not in a git repository", details=details)


class AlreadyConverted(RepositoryException):
    """仓库已经是 worktree 结构"""
    pass


class NotConverted(RepositoryException):
    """仓库尚未转换为 worktree 结构"""
    pass


class ConversionAborted(RepositoryException):
    """用户取消了转换"""
    pass


class ConversionError(RepositoryException):
    """转换过程失败"""
    pass


# Worktree 相关异常
class WorktreeException(GWTException):
    """Worktree 操作异常"""
    pass


class TargetExists(WorktreeException):
    """目标目录已存在"""
    def __init__(self, path, details: str = None):
        self.path = path
        super().__init__(f"Directory already exists: {path}", details=details)


class WorktreeNotFound(WorktreeException):
    """Worktree 不存在"""
    def __init__(self, name: str, details: str = None):
        self.name = name
        super().__init__(f"Worktree '{name}' not found", details=details)


class CannotRemoveCurrent(WorktreeException):
    """无法删除当前所在的 worktree"""
    pass


class InvalidWorktree(WorktreeException):
    """目录不是有效的 worktree"""
    def __init__(self, path, details: str = None):
        self.path = path
        super().__init__(f"'{path}' is not a valid git worktree", details=details)


# Git 操作异常
class GitException(GWTException):
    """Git 操作异常"""
    pass


class GitCommandError(GitException):
    """Git 命令执行失败，details 中保留 git 的原始错误输出"""
    def __init__(self, message: str, details: str = None, return_code: int = None):
        self.return_code = return_code
        super().__init__(message, details=details)


# 配置相关异常
class ConfigException(GWTException):
    """配置异常"""
    pass


class ConfigParseError(ConfigException):
    """配置解析失败"""
    pass


class ConfigIOError(ConfigException):
    """配置文件读写失败"""
    pass


class ConfigValidationError(ConfigException):
    """配置验证失败"""
    pass


# 事务异常
class TransactionException(GWTException):
    """事务异常"""
    pass


class TransactionRollbackError(TransactionException):
    """事务回滚失败"""
    def __init__(self, message: str, executed_ops=None):
        super().__init__(message)
        self.executed_ops = executed_ops or []
