from secretsboard.collector.watcher import CollectionSnapshot, ResourceWatcher, WatchError

__all__ = ["CollectionSnapshot", "ResourceWatcher", "WatchError"]
