"""BBQ 异常体系"""

from typing import Optional


class BbqException(Exception):
    """基础异常类"""
    def __init__(self, message: str, details: Optional[str] = None):
        self.message = message
        self.details = details
        super().__init__(self.message)


# 名称相关异常
class NameCollision(BbqException):
    """名称已被占用"""
    pass


class NameRequired(BbqException):
    """缺少必需的名称"""
    pass


class NotFound(BbqException):
    """对象不存在"""
    pass


class ValidationException(BbqException):
    """输入校验失败"""
    pass


# 仓库相关异常
class RepoAlreadyExists(NameCollision):
    """仓库已存在"""
    pass


class RepoNotFound(NotFound):
    """仓库不存在"""
    pass


class RepoHasWorktrees(BbqException):
    """仓库下仍有 worktree，拒绝删除"""
    pass


class InvalidRepoName(ValidationException):
    """无效的仓库名"""
    pass


class InvalidSource(ValidationException):
    """无效的克隆来源"""
    pass


# Worktree 相关异常
class WorktreeAlreadyExists(NameCollision):
    """Worktree 已存在"""
    pass


class WorktreeNotFound(NotFound):
    """Worktree 不存在"""
    pass


class WorktreeNameRequired(NameRequired):
    """未提供 worktree 名称且未启用自动命名"""
    pass


class InvalidWorktreeName(ValidationException):
    """无效的 worktree 名称"""
    pass


class InvalidBranchName(ValidationException):
    """无效的分支名"""
    pass


# 生命周期脚本异常
class HookException(BbqException):
    """生命周期脚本异常"""
    def __init__(self, message: str, script: str = "", details: Optional[str] = None):
        super().__init__(message, details)
        self.script = script


class MissingInterpreter(HookException):
    """脚本首行缺少解释器声明（#!）"""
    pass


class HookFailed(HookException):
    """脚本执行失败（非零退出码）"""
    def __init__(
        self,
        message: str,
        script: str = "",
        exit_code: Optional[int] = None,
        details: Optional[str] = None,
    ):
        super().__init__(message, script=script, details=details)
        self.exit_code = exit_code


# 编辑器 / 终端启动异常
class LaunchException(BbqException):
    """工具启动异常"""
    pass


class NoToolAvailable(LaunchException):
    """没有可用的编辑器或终端"""
    pass


class LaunchFailed(LaunchException):
    """工具进程启动失败"""
    pass


# Git 操作异常
class GitException(BbqException):
    """Git 操作异常"""
    pass


class GitCommandError(GitException):
    """Git 命令执行失败"""
    pass


class GitHubCliMissing(GitException):
    """未安装 GitHub CLI (gh)"""
    pass


class GitHubCliError(GitException):
    """gh 命令执行失败"""
    pass


# 配置相关异常
class ConfigException(BbqException):
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
