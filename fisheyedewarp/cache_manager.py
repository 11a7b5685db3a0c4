"""
MIT License

Copyright (c) 2025 Pan Yu

Permission is hereby granted, free of charge, to any person obtaining a copy
of this software and associated documentation files (the "Software"), to deal
in the Software without restriction, including without limitation the rights
to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
copies of the Software, and to permit persons to whom the Software is
furnished to do so, subject to the following conditions:

The above copyright notice and this permission notice shall be included in all
copies or substantial portions of the Software.

THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
SOFTWARE.

Author: Pan Yu
"""

import threading
import time
from collections import OrderedDict
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from .dewarp_params import ProjectionType


def cache_key_prefix(projection_type: ProjectionType) -> str:
  """Key prefix shared by all cached maps of one projection type."""
  return f"{projection_type.value.lower()}_"


class CacheManager:
  """
  Thread-safe LRU cache for dewarp coordinate maps.

  Entries are (xs, ys) pairs keyed by strings that start with the projection
  type prefix (see cache_key_prefix). A single manager may be shared by
  several FisheyeDewarp instances and worker threads.
  """

  def __init__(self, max_memory_mb: Optional[float] = None):
    """
    Parameters:
    - max_memory_mb: optional maximum memory usage in MB, None for no limit
    """
    # Ordered from least to most recently used
    self._cache: "OrderedDict[str, Tuple[np.ndarray, np.ndarray, float]]" = OrderedDict()
    self._max_memory_mb = max_memory_mb
    self._lock = threading.RLock()
    self._access_count = 0
    self._hit_count = 0
    self._eviction_count = 0

  @property
  def max_memory_mb(self) -> Optional[float]:
    return self._max_memory_mb

  def get(self, cache_key: str) -> Optional[Tuple[np.ndarray, np.ndarray]]:
    """
    Retrieve cached maps and mark them most recently used.

    Returns:
    - Tuple of (xs, ys) if found, None otherwise
    """
    with self._lock:
      self._access_count += 1

      if cache_key not in self._cache:
        return None

      xs, ys, _ = self._cache[cache_key]
      self._cache[cache_key] = (xs, ys, time.time())
      self._cache.move_to_end(cache_key)
      self._hit_count += 1
      return (xs, ys)

  def put(self, cache_key: str, xs: np.ndarray, ys: np.ndarray) -> bool:
    """
    Store maps, evicting least recently used entries to honour the memory limit.

    Returns:
    - True if the maps were stored, False if they cannot fit even in an empty cache
    """
    with self._lock:
      new_memory_mb = (xs.nbytes + ys.nbytes) / (1024 * 1024)
      current_time = time.time()

      if cache_key in self._cache:
        self._cache[cache_key] = (xs.copy(), ys.copy(), current_time)
        self._cache.move_to_end(cache_key)
        return True

      if self._max_memory_mb is not None:
        if new_memory_mb > self._max_memory_mb:
          print(f"Warning: Cannot cache {cache_key} - {new_memory_mb:.1f} MB exceeds "
                f"memory limit ({self._max_memory_mb:.1f} MB)")
          return False

        current_memory = self._calculate_total_memory_mb()
        while current_memory + new_memory_mb > self._max_memory_mb and self._cache:
          lru_key, (lru_xs, lru_ys, _) = self._cache.popitem(last=False)
          freed_memory = (lru_xs.nbytes + lru_ys.nbytes) / (1024 * 1024)
          current_memory -= freed_memory
          self._eviction_count += 1
          print(f"LRU evicted: {lru_key} (freed {freed_memory:.1f} MB)")

      self._cache[cache_key] = (xs.copy(), ys.copy(), current_time)
      return True

  def remove(self, cache_key: str) -> bool:
    """Remove one entry. Returns True if it was present."""
    with self._lock:
      if cache_key in self._cache:
        del self._cache[cache_key]
        return True
      return False

  def clear(self) -> None:
    """Clear all cached maps."""
    with self._lock:
      self._cache.clear()

  def contains(self, cache_key: str) -> bool:
    with self._lock:
      return cache_key in self._cache

  def __len__(self) -> int:
    with self._lock:
      return len(self._cache)

  def get_info(self) -> Dict[str, Any]:
    """
    Get cache statistics.

    Returns:
    - Dictionary with entry counts (total and per projection type), memory usage,
      memory limit and access/hit/eviction counters
    """
    with self._lock:
      total_memory_bytes = 0
      counts = {p.value: 0 for p in ProjectionType}
      oldest_timestamp = float('inf')
      newest_timestamp = 0.0

      for key, (xs, ys, timestamp) in self._cache.items():
        total_memory_bytes += xs.nbytes + ys.nbytes
        oldest_timestamp = min(oldest_timestamp, timestamp)
        newest_timestamp = max(newest_timestamp, timestamp)
        for projection_type in ProjectionType:
          if key.startswith(cache_key_prefix(projection_type)):
            counts[projection_type.value] += 1
            break

      cache_age_span = newest_timestamp - oldest_timestamp if len(self._cache) > 1 else 0

      return {
        'total_cached_maps': len(self._cache),
        'maps_by_projection': counts,
        'memory_usage_bytes': total_memory_bytes,
        'memory_usage_mb': total_memory_bytes / (1024 * 1024),
        'max_memory_mb': self._max_memory_mb,
        'memory_limit_enabled': self._max_memory_mb is not None,
        'total_accesses': self._access_count,
        'total_hits': self._hit_count,
        'total_evictions': self._eviction_count,
        'cache_age_span_seconds': cache_age_span
      }

  def print_status(self) -> None:
    """Print current cache status in a human-readable format."""
    info = self.get_info()
    per_type = ", ".join(f"{count} {name}" for name, count in info['maps_by_projection'].items())
    print(f"Cache status: {info['total_cached_maps']} map pairs ({per_type}), "
          f"{info['memory_usage_mb']:.1f} MB")

    if info['memory_limit_enabled']:
      usage_percent = (info['memory_usage_mb'] / info['max_memory_mb']) * 100
      print(f"Cache memory usage: {usage_percent:.1f}% of {info['max_memory_mb']:.1f} MB limit")

  def _calculate_total_memory_mb(self) -> float:
    total_bytes = 0
    for xs, ys, _ in self._cache.values():
      total_bytes += xs.nbytes + ys.nbytes
    return total_bytes / (1024 * 1024)

  def get_cache_keys(self, prefix: Optional[str] = None) -> List[str]:
    """Get all cache keys, optionally filtered by prefix (e.g. 'linear_')."""
    with self._lock:
      if prefix is None:
        return list(self._cache.keys())
      return [key for key in self._cache.keys() if key.startswith(prefix)]

  def get_memory_usage_by_type(self) -> Dict[str, float]:
    """
    Get memory usage in MB for each projection type, plus 'other' and 'total'.
    """
    with self._lock:
      usage = {p.value: 0.0 for p in ProjectionType}
      usage['other'] = 0.0

      for key, (xs, ys, _) in self._cache.items():
        memory_mb = (xs.nbytes + ys.nbytes) / (1024 * 1024)
        for projection_type in ProjectionType:
          if key.startswith(cache_key_prefix(projection_type)):
            usage[projection_type.value] += memory_mb
            break
        else:
          usage['other'] += memory_mb

      usage['total'] = sum(usage.values())
      return usage

  def get_lru_order(self) -> List[str]:
    """Cache keys ordered from least to most recently used."""
    with self._lock:
      return list(self._cache.keys())

  def get_cache_ages(self) -> Dict[str, float]:
    """Seconds since each entry was last accessed."""
    with self._lock:
      current_time = time.time()
      return {key: current_time - timestamp
              for key, (_, _, timestamp) in self._cache.items()}
