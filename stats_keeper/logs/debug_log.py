import logging
import sys
import json
import inspect
import time
import traceback
from functools import wraps

from stats_keeper.core.errors import ErrorKind, StorageError
from stats_keeper.logs.server_log import log_dir

# Цвета для консольного вывода
BLUE = '\033[94m'
GREEN = '\033[92m'
YELLOW = '\033[93m'
RED = '\033[91m'
PURPLE = '\033[95m'
CYAN = '\033[96m'
END = '\033[0m'

MAX_DATA_LENGTH = 1000


def format_object(obj):
    """Представление объекта для лога: pydantic модели, коллекции, остальное через str"""
    if hasattr(obj, "model_dump"):
        obj = obj.model_dump(mode="json")
    if isinstance(obj, (list, dict, tuple, set)):
        try:
            return json.dumps(obj, indent=2, ensure_ascii=False, default=str)
        except (TypeError, ValueError):
            return str(obj)
    return str(obj)


def _truncate(text: str) -> str:
    if len(text) > MAX_DATA_LENGTH:
        return text[:MAX_DATA_LENGTH] + "... [обрезано]"
    return text


class DebugLogger:
    """Логгер для дебага: место вызова, цветной вывод, трейсы ошибок"""

    def __init__(self, name="debug", level=logging.DEBUG):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)
        self.logger.propagate = False

        if self.logger.handlers:
            self.logger.handlers.clear()

        formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')

        file_handler = logging.FileHandler(log_dir / "debug.log", encoding='utf-8')
        file_handler.setFormatter(formatter)
        file_handler.setLevel(level)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        console_handler.setLevel(level)

        self.logger.addHandler(file_handler)
        self.logger.addHandler(console_handler)

    def debug(self, message, *args, **kwargs):
        """Дебаг лог с информацией о вызывающем коде"""
        frame = inspect.currentframe().f_back
        filename = frame.f_code.co_filename
        marker = filename.rfind("stats_keeper")
        if marker != -1:
            filename = filename[marker:]

        caller_info = f"{BLUE}[{filename}:{frame.f_lineno} - {frame.f_code.co_name}]{END}"
        self.logger.debug(f"{caller_info} {message}", *args, **kwargs)

    def warning(self, message, *args, **kwargs):
        self.logger.warning(f"{YELLOW}{message}{END}", *args, **kwargs)

    def error(self, message, *args, **kwargs):
        """Лог ошибок, с трейсом если есть активное исключение"""
        trace = traceback.format_exc()
        if trace and trace != 'NoneType: None\n':
            message = f"{message}\n{RED}Traceback:{END}\n{trace}"
        self.logger.error(f"{RED}{message}{END}", *args, **kwargs)

    def log_exception(self, message="Произошло исключение", exc=None):
        """Лог исключения вместе с его причиной (__cause__ / cause)"""
        if exc is None:
            exc = sys.exc_info()[1]
        if exc is None:
            self.error(message)
            return
        cause = getattr(exc, "cause", None) or exc.__cause__
        cause_str = f" (причина: {type(cause).__name__}: {cause})" if cause else ""
        self.logger.error(f"{RED}{message}: {type(exc).__name__}: {exc}{cause_str}{END}")

    def log_request(self, request, extra_info=None):
        """Входящий HTTP запрос"""
        method = getattr(request, 'method', 'UNKNOWN')
        url = str(getattr(request, 'url', 'UNKNOWN'))
        client = getattr(request, 'client', None)
        client_host = client.host if client else "unknown"
        headers = dict(getattr(request, 'headers', {}))

        info = (
            f"{CYAN}HTTP запрос:{END} {method} {url}\n"
            f"{CYAN}Клиент:{END} {client_host}\n"
            f"{CYAN}Заголовки:{END} {json.dumps(headers, indent=2, ensure_ascii=False)}"
        )
        if extra_info:
            info += f"\n{CYAN}Дополнительно:{END} {extra_info}"

        self.debug(info)

    def log_response(self, response, process_time=None):
        """Исходящий HTTP ответ"""
        status_code = getattr(response, 'status_code', 0)

        color = GREEN if 200 <= status_code < 400 else YELLOW if 400 <= status_code < 500 else RED
        info = f"{CYAN}HTTP ответ:{END} {color}Статус {status_code}{END}"
        if process_time is not None:
            info += f"\n{CYAN}Время обработки:{END} {process_time:.3f}с"

        self.debug(info)


def log_operation(logger=None):
    """Декоратор для корутин: параметры на входе, результат и время на выходе"""

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            log = logger or debug_logger
            params = dict(zip(inspect.getfullargspec(func).args, args))
            params.update(kwargs)
            # Сессия БД в логе не нужна
            params.pop("db", None)

            log.debug(f"{PURPLE}Начало {func.__qualname__}{END} с параметрами: {_truncate(format_object(params))}")
            start_time = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except StorageError as e:
                if e.kind == ErrorKind.INTERNAL:
                    log.log_exception(f"Ошибка в {func.__qualname__}", exc=e)
                else:
                    log.warning(f"{func.__qualname__}: {e}")
                raise
            except Exception as e:
                log.log_exception(f"Ошибка в {func.__qualname__}", exc=e)
                raise
            execution_time = time.perf_counter() - start_time
            log.debug(
                f"{PURPLE}Окончание {func.__qualname__}{END}, "
                f"результат: {_truncate(format_object(result))}, время выполнения: {execution_time:.4f}с"
            )
            return result

        return wrapper

    return decorator


debug_logger = DebugLogger()
