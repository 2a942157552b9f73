"""Starter .vibesnap.toml template."""

DEFAULT_TOML = """\
# VibeSnap Configuration
version = "1.0"

[watcher]
debounce_ms = 2000        # quiet period before an automatic snapshot
log_file = ""             # prompt log; its last non-empty line names each auto snapshot

[snapshot]
manual_prefix = "[Vibe] AI Prompt: "
auto_prefix = "[Vibe] Auto: "
default_message = "AI modified files"
init_message = "VibeSnap: initialize project"
history_limit = 50

[git]
user_name = "VibeSnap User"      # used only when the repository has no identity
user_email = "vibesnap@example.com"
timeout = 30                     # seconds per git command

[output]
format = "terminal"       # terminal | json | yaml
"""
