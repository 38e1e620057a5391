"""State publication layer.

Everything the engine hands to the outside world after a tick goes
through here: change events fan out through the :class:`Notifier`,
durable snapshots go to a :class:`StateStore`.
"""
