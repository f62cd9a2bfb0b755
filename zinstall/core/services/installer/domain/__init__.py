"""L1 Domain — pure logic: stack ordering, waves, repo templates, callbacks."""
