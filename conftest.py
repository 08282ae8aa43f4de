"""Root conftest: runs before any test module imports."""

import os

# 测试时不写日志文件，控制台输出不带颜色
os.environ["LOG_FILE"] = ""
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ["NO_COLOR"] = "1"
os.environ["CMS_RETRY_DELAY"] = "0"
os.environ.pop("FORCE_COLOR", None)
os.environ.pop("CMS_API_BASE_URL", None)
os.environ.pop("API_SOURCES", None)
