# Service classes that sit between routers and the product store.
