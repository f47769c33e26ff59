from mangum import Mangum
from main import app

# API Gateway proxy events; startup/shutdown events never fire on Lambda
handler = Mangum(app, lifespan="off")


def lambda_handler(event, context):
    return handler(event, context)
