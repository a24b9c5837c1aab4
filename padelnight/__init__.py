"""padelnight: padel game night 抽签与排名"""

__version__ = "0.1.0"
