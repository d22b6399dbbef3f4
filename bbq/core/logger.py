"""结构化日志系统

支持操作追踪的结构化日志记录器。使用 structlog 库，默认写入 ~/.bbq/logs/bbq.log。"""

import logging
import time
import traceback
import contextvars
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pathlib import Path

import structlog


# 当前操作上下文变量
_operation_id: contextvars.ContextVar[str] = contextvars.ContextVar(
    'operation_id', default=""
)


class LoggerConfig:
    """日志配置类"""

    def __init__(
        self,
        log_dir: Optional[Path] = None,
        level: str = "INFO",
        json_output: bool = False,
        console_output: bool = False,
    ):
        """初始化日志配置
        Args:
            log_dir: 日志目录，如果为 None 则不写入文件
            level: 日志级别 (DEBUG, INFO, WARNING, ERROR)
            json_output: 是否输出 JSON 格式
            console_output: 是否输出到控制台（stderr）
        """
        self.log_dir = log_dir
        self.level = level
        self.json_output = json_output
        self.console_output = console_output


def _setup_structlog(config: LoggerConfig) -> None:
    """配置 stdlib logging 与 structlog"""
    handlers = []

    # 添加控制台处理器
    if config.console_output:
        handlers.append(logging.StreamHandler())

    # 添加文件处理器
    if config.log_dir:
        log_dir = Path(config.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_dir / "bbq.log", encoding="utf-8"))

    if not handlers:
        # 未配置输出时吞掉日志，避免落到 logging 的 lastResort 处理器
        handlers.append(logging.NullHandler())

    logging.basicConfig(
        handlers=handlers,
        level=getattr(logging, config.level.upper(), logging.INFO),
        format="%(message)s",
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
            if config.json_output
            else structlog.dev.ConsoleRenderer(colors=False),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


class Logger:
    """结构化日志记录器

    包装 structlog 的 BoundLogger，自动附加当前操作 ID。
    """

    def __init__(self, name: str = "bbq", bound: Optional[Dict[str, Any]] = None):
        """初始化日志记录器

        Args:
            name: 日志记录器名称
            bound: 预先绑定的上下文
        """
        self.name = name
        self._bound = dict(bound or {})

    def debug(self, event: str, **kwargs) -> None:
        """记录 DEBUG 级别日志"""
        self._log("debug", event, **kwargs)

    def info(self, event: str, **kwargs) -> None:
        """记录 INFO 级别日志"""
        self._log("info", event, **kwargs)

    def warning(self, event: str, **kwargs) -> None:
        """记录 WARNING 级别日志"""
        self._log("warning", event, **kwargs)

    def error(self, event: str, **kwargs) -> None:
        """记录 ERROR 级别日志"""
        self._log("error", event, **kwargs)

    def bind(self, **kwargs) -> 'Logger':
        """绑定上下文信息到日志记录器

        Returns:
            新的日志记录器实例，绑定了指定的上下文
        """
        merged = dict(self._bound)
        merged.update(kwargs)
        return Logger(self.name, merged)

    def _log(self, level: str, event: str, **kwargs) -> None:
        context = dict(self._bound)
        operation_id = _operation_id.get()
        if operation_id:
            context['operation_id'] = operation_id
        context.update(kwargs)

        # 每次调用都取 logger，使 configure_logger 之后的配置立即生效
        log_method = getattr(structlog.get_logger(self.name), level)
        log_method(event, **context)


class OperationTracer:
    """操作追踪器

    用于追踪操作的执行过程，包括开始、结束、异常等事件。
    """

    def __init__(self, logger: Optional[Logger] = None):
        self.logger = logger or Logger()
        self.operations: Dict[str, Dict[str, Any]] = {}

    def start_operation(
        self,
        operation_name: str,
        operation_id: Optional[str] = None,
        **context
    ) -> str:
        """记录操作开始

        Returns:
            生成或提供的操作 ID
        """
        op_id = operation_id or str(uuid.uuid4())

        self.operations[op_id] = {
            'name': operation_name,
            'start_time': time.time(),
            'started_at': datetime.now(timezone.utc).isoformat(),
            'context': context,
            'status': 'running',
        }

        self.logger.info(f'{operation_name}_started', operation_id=op_id, **context)
        return op_id

    def end_operation(
        self,
        operation_id: str,
        status: str = "success",
        **context
    ) -> Dict[str, Any]:
        """记录操作结束

        Returns:
            包含操作统计的字典
        """
        if operation_id not in self.operations:
            raise ValueError(f"Operation {operation_id} not found")

        op_data = self.operations[operation_id]
        duration_ms = int((time.time() - op_data['start_time']) * 1000)
        op_data['status'] = status
        op_data['duration_ms'] = duration_ms

        event_name = f"{op_data['name']}_{'succeeded' if status == 'success' else 'failed'}"
        self.logger.info(
            event_name,
            operation_id=operation_id,
            duration_ms=duration_ms,
            status=status,
            **context,
        )

        return {
            'operation_id': operation_id,
            'duration_ms': duration_ms,
            'status': status,
        }

    def record_exception(self, operation_id: str, exception: BaseException, **context) -> None:
        """记录操作中的异常"""
        if operation_id not in self.operations:
            raise ValueError(f"Operation {operation_id} not found")

        self.logger.error(
            f"{self.operations[operation_id]['name']}_error",
            operation_id=operation_id,
            error_type=type(exception).__name__,
            error_message=str(exception),
            traceback=traceback.format_exc(),
            **context,
        )

    def get_operation_stats(self, operation_id: str) -> Optional[Dict[str, Any]]:
        """获取操作统计信息"""
        return self.operations.get(operation_id)


class OperationScope:
    """操作范围上下文管理器

    提供 with 语句支持的操作追踪上下文。
    自动处理操作的开始、结束和异常记录，异常继续向外传播。
    """

    def __init__(
        self,
        operation_name: str,
        context: Optional[Dict[str, Any]] = None,
        logger: Optional[Logger] = None,
        operation_id: Optional[str] = None,
    ):
        self.operation_name = operation_name
        self.context = context or {}
        self.logger = logger or Logger()
        self.tracer = OperationTracer(self.logger)
        self.operation_id = operation_id or str(uuid.uuid4())
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> 'OperationScope':
        self._token = _operation_id.set(self.operation_id)
        self.tracer.start_operation(
            self.operation_name,
            operation_id=self.operation_id,
            **self.context
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_type is not None:
            self.tracer.record_exception(self.operation_id, exc_val, **self.context)
            self.tracer.end_operation(
                self.operation_id,
                status="failure",
                error_type=exc_type.__name__,
                error_message=str(exc_val),
                **self.context
            )
        else:
            self.tracer.end_operation(self.operation_id, status="success", **self.context)

        # 恢复外层操作的 ID
        if self._token is not None:
            _operation_id.reset(self._token)
        return False

    def get_stats(self) -> Optional[Dict[str, Any]]:
        """获取操作统计信息"""
        return self.tracer.get_operation_stats(self.operation_id)


_configured = False


def get_logger(name: str = "bbq") -> Logger:
    """获取日志记录器实例

    首次调用时以静默配置初始化 structlog，之后由 configure_logger 覆盖。
    """
    global _configured

    if not _configured:
        _setup_structlog(LoggerConfig())
        _configured = True

    return Logger(f"bbq.{name}" if name != "bbq" else name)


def configure_logger(config: LoggerConfig) -> None:
    """配置全局日志输出"""
    global _configured
    _setup_structlog(config)
    _configured = True
