"""
Realtime sync subsystem.

Components:
- identity_gate.py: current identity + change notifications, sign-in/out passthrough
- materializer.py: owner-scoped live query -> ordered Visible Collection
- dispatcher.py: add/update/delete writes, pending-delete markers, failure messages
- editor.py: per-view Viewing/Editing state machine
- session.py: starts/stops the subscription as the identity changes
- board.py: presentation model of the signed-in task list
"""
