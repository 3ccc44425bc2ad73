"""Condition evaluation core.

Pipeline, in order:
- condition_loader.py (dashboard panel targets -> Condition)
- condition_executor.py (Condition -> ExecutionResults via the execution engine)
- result_evaluator.py (ExecutionResults -> per-instance states)
- result_presenter.py (states -> display frame)

Collaborator contracts live in ports.py; evaluation.py chains the steps for one request.
"""

# Import side-effects are intentionally avoided here; modules are imported by routers/services as needed.
