"""一次调用的运行环境

加载配置、解析根目录，并把各个组件按同一份配置组装起来。CLI 与 TUI 共用。
"""

from pathlib import Path
from typing import Dict, Optional

from bbq import __version__
from bbq.core.config_manager import BbqConfig, ConfigManager
from bbq.core.git_client import GitClient
from bbq.core.hook_manager import HookManager
from bbq.core.logger import get_logger
from bbq.core.paths import BbqPaths, resolve_root
from bbq.core.repo_registry import RepoRegistry
from bbq.core.tool_launcher import ToolLauncher
from bbq.core.update_checker import UpdateChecker
from bbq.core.worktree_manager import WorktreeManager

logger = get_logger("context")


class BbqContext:
    """组件容器

    配置在构造时读取一次。交互界面修改设置后调用 reload_config 重新组装依赖配置的组件。
    """

    def __init__(
        self,
        config_manager: Optional[ConfigManager] = None,
        capture_hook_output: bool = False,
    ):
        """初始化

        Args:
            config_manager: 配置存储，默认读取 ~/.bbq/config.toml
            capture_hook_output: 是否捕获生命周期脚本的输出
        """
        self.config_manager = config_manager or ConfigManager()
        self.config: BbqConfig = self.config_manager.load()
        self.paths = BbqPaths(resolve_root(self.config.root_dir))
        self.hook_manager = HookManager(capture_output=capture_hook_output)
        self.registry = RepoRegistry(self.paths)
        self.worktrees = WorktreeManager(self.paths, self.config, hook_manager=self.hook_manager)
        self.launcher = ToolLauncher(self.config)
        logger.debug("Context initialized", root=str(self.paths.root))

    def reload_config(self) -> None:
        """重新读取配置，更新 worktree 管理器与启动器

        根目录、脚本监听器和已启动的进程保持不变。
        """
        self.config = self.config_manager.load()
        self.worktrees.config = self.config
        self.launcher.config = self.config
        logger.info("Configuration reloaded")

    @property
    def root(self) -> Path:
        return self.paths.root

    def update_checker(self) -> UpdateChecker:
        """构造写回同一配置存储的更新检查器"""
        return UpdateChecker(self.config_manager, __version__)

    def environment_info(self) -> Dict[str, Optional[str]]:
        """根目录与 git / gh 版本"""
        git = GitClient()
        return {
            "root": str(self.paths.root),
            "git": git.get_version(),
            "gh": git.gh_version(),
        }
