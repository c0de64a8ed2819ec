from . import account, credential, health, payment, price, shop, xrpl

routers = [
    health.router,
    xrpl.router,
    account.router,
    payment.router,
    shop.router,
    credential.router,
    price.router,
]
