"""Query compilation, datum operations and execution against a storage backend."""