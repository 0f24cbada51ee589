"""Services — imperative shell: load state, ask core, apply narrow mutations, commit once."""
