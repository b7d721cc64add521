"""Round scoring and the Game Master grace-period scheduler.

Neither module touches Socket.IO state directly: scoring works on a Room,
and the scheduler only needs ``start_background_task`` and ``sleep``.
"""
