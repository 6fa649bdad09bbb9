PROJECT_NAME = "sitedeploy"
API_V1_STR = "/api/v1"
