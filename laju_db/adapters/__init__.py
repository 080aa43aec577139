"""Database adapters: one module per backend, sync and async classes in each."""
