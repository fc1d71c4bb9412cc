from risebot.bot import RiseBot, AccountWorker
from risebot.config import Settings
from risebot.logger import logger
from risebot.captcha import CaptchaSolver
from risebot.scheduler import Scheduler, TaskResult
from risebot import utils

__all__ = [
    'RiseBot',
    'AccountWorker',
    'Settings',
    'logger',
    'CaptchaSolver',
    'Scheduler',
    'TaskResult',
    'utils'
]
