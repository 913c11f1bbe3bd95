"""
Lambda Handlers for Comprehensive API Platform

Lambda コードアセットとしてデプロイされるエントリポイント:
- Action (POST /action, Cognito 認証済みリクエスト)
"""
