"""Platform adapters: layout switching, text injection, accessible documents."""
