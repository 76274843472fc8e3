"""Host preparation: memory tuning, name resolution and data disks."""
