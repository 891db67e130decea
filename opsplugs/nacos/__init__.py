"""Read-only access to Nacos configuration over HTTP."""