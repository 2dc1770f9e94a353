"""Service Rebalancer.

Long-running control loop for a single ECS service that:
 - keeps the service's desired count equal to the cluster's registered host count
 - stops duplicate tasks when more than one lands on the same container instance
 - stays out of the way while a CodeDeploy rollout is in progress (cooldown)

It is meant to run as one supervised process; any API error aborts it.
"""
