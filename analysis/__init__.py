"""Map rendering for the Legislative Results Map."""
