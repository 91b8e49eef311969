"""Pure render functions mapping content collections to HTML fragments."""
