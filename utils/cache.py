"""Caching configuration and utilities for the Boundary Data Explorer"""
import json
import hashlib
import logging
from functools import wraps
from typing import Any, Optional

from flask import Flask
from flask_caching import Cache as FlaskCache

logger = logging.getLogger(__name__)


class Cache:
    """
    A wrapper for Flask-Caching that picks a backend from the app config.

    Redis is used when ``REDIS_URL`` is configured and reachable, SimpleCache
    otherwise. The wrapped cache remembers its app, so it also works outside
    a request (background threads, tests).
    """
    def __init__(self, app: Optional[Flask] = None):
        self._app = app
        self._cache: Optional[FlaskCache] = None
        if app:
            self.init_app(app)

    def init_app(self, app: Flask):
        """Initializes the cache with a Flask app instance."""
        self._app = app
        default_timeout = app.config.get('CACHE_DEFAULT_TIMEOUT', 3600)
        simple_config = {
            'CACHE_TYPE': 'SimpleCache',
            'CACHE_DEFAULT_TIMEOUT': default_timeout,
            'CACHE_THRESHOLD': 500,
        }

        redis_url = app.config.get('REDIS_URL')
        if app.config.get('USE_SIMPLE_CACHE') or not redis_url:
            self._cache = FlaskCache(app, config=simple_config)
            logger.info("Cache initialized with SimpleCache")
            return

        try:
            import redis
            r = redis.from_url(redis_url, socket_connect_timeout=0.5, socket_timeout=0.5)
            r.ping()
        except ImportError:
            logger.info("Redis library not installed. Using SimpleCache.")
            self._cache = FlaskCache(app, config=simple_config)
            return
        except Exception as e:
            logger.warning(f"Redis configured but connection failed: {e}. Falling back to SimpleCache.")
            self._cache = FlaskCache(app, config=simple_config)
            return

        self._cache = FlaskCache(app, config={
            'CACHE_TYPE': 'RedisCache',
            'CACHE_REDIS_URL': redis_url,
            'CACHE_DEFAULT_TIMEOUT': default_timeout,
            'CACHE_KEY_PREFIX': 'boundary_explorer_',
        })
        logger.info("Cache initialized with Redis at %s", redis_url)

    @property
    def cache(self) -> FlaskCache:
        if self._cache is None:
            raise RuntimeError("Flask-Caching has not been initialized with a Flask app.")
        return self._cache

    def make_cache_key(self, *args, **kwargs):
        """Generate a cache key from function arguments"""
        key_parts = []
        for arg in args:
            if isinstance(arg, (dict, list, tuple)):
                key_parts.append(json.dumps(arg, sort_keys=True))
            else:
                key_parts.append(str(arg))

        for k, v in sorted(kwargs.items()):
            if isinstance(v, (dict, list, tuple)):
                key_parts.append(f"{k}={json.dumps(v, sort_keys=True)}")
            else:
                key_parts.append(f"{k}={v}")

        key_string = "|".join(key_parts)
        return f"func_{hashlib.md5(key_string.encode()).hexdigest()}"

    def cache_result(self, timeout: int = 3600):
        """Decorator to cache function results; None results are not cached"""
        def decorator(func):
            @wraps(func)
            def wrapper(*args, **kwargs):
                cache_key = self.make_cache_key(func.__name__, *args, **kwargs)
                cached_result = self.cache.get(cache_key)
                if cached_result is not None:
                    logger.debug(f"Cache hit for {func.__name__}")
                    return cached_result

                logger.debug(f"Cache miss for {func.__name__}")
                result = func(*args, **kwargs)
                if result is not None:
                    self.cache.set(cache_key, result, timeout=timeout)
                return result
            return wrapper
        return decorator

    def get(self, key: str) -> Optional[Any]:
        """Get a value from the cache."""
        return self.cache.get(key)

    def set(self, key: str, value: Any, timeout: int = 3600):
        """Set a value in the cache."""
        self.cache.set(key, value, timeout=timeout)
        logger.debug(f"Set cache key: {key}")

    @property
    def app(self):
        return self._app


# A default instance to be initialized by the app factory
cache = Cache()
