# Utilities package init
